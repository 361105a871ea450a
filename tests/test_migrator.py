"""
Tests for RestMigrator.
"""

import asyncio
from typing import Any, Dict, List

import pytest
from pydantic import ValidationError

from rest_migrator import (
    CancellationToken,
    DuplicateError,
    MappingError,
    PersistenceError,
    RelationError,
    RestMigrator,
    from_items,
    migrate_all,
)
from tests.example.models import (
    ArticleModel,
    FailingArticleModel,
    FailingUserModel,
    UserModel,
)
from tests.example.source import SAMPLE_ARTICLES, create_source_stream


def combine_title(record: Dict[str, Any]) -> Dict[str, Any]:
    return {"title": {"value": f"{record['title']}: {record['subtitle']}"}}


def split_keywords(record: Dict[str, Any]) -> Dict[str, Any]:
    category, *tags = [tag.strip() for tag in record["keywords"].split(",")]
    return {"category": {"value": category}, "tags": {"value": tags}}


def relate_author(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "author": {
            "value": {"name": record["author"], "email": record["email"]},
            "related_store": UserModel,
        }
    }


@pytest.mark.asyncio
async def test_simple_string_mappings_project_source_values(bus) -> None:
    """String mappings copy each declared field's raw value."""
    mapping = {"title": "title", "content": "content", "email": "email"}
    migrator = RestMigrator(create_source_stream, ArticleModel, mapping, bus)

    results = await migrate_all(migrator)

    assert len(results) == 2
    for result, source in zip(results, SAMPLE_ARTICLES):
        assert {key: result[key] for key in mapping} == {key: source[key] for key in mapping}


@pytest.mark.asyncio
async def test_rename_mapping_uses_target_name(bus) -> None:
    migrator = RestMigrator(create_source_stream, ArticleModel, {"content": "body"}, bus)

    results = await migrate_all(migrator)

    assert results[0]["body"] == SAMPLE_ARTICLES[0]["content"]
    assert "content" not in results[0]


@pytest.mark.asyncio
async def test_resolver_combines_fields(bus) -> None:
    """A resolver may read any field of the record (many-to-one)."""
    mapping = {"title": combine_title, "content": "content"}
    migrator = RestMigrator(create_source_stream, ArticleModel, mapping, bus)

    results = await migrate_all(migrator)

    assert len(results) == 2
    assert results[0]["title"] == "Introduction to TypeScript: A Comprehensive Guide"
    assert results[1]["title"] == "MobX State Management: Made Simple"
    assert results[0]["content"] == SAMPLE_ARTICLES[0]["content"]


@pytest.mark.asyncio
async def test_resolver_fans_out_to_several_fields(bus) -> None:
    """One source field can produce several target fields (one-to-many)."""
    migrator = RestMigrator(create_source_stream, ArticleModel, {"keywords": split_keywords}, bus)

    results = await migrate_all(migrator)

    assert results[0]["category"] == "typescript"
    assert results[0]["tags"] == ["javascript", "programming"]
    assert results[1]["category"] == "mobx"
    assert results[1]["tags"] == ["react", "state-management"]
    assert "keywords" not in results[0]


@pytest.mark.asyncio
async def test_async_resolver_is_awaited(bus) -> None:
    async def lookup_author(record):
        await asyncio.sleep(0.01)
        return {"author_name": {"value": record["author"].upper()}}

    migrator = RestMigrator(create_source_stream, ArticleModel, {"author": lookup_author}, bus)

    results = await migrate_all(migrator)

    assert [r["author_name"] for r in results] == ["JOHN DOE", "JANE SMITH"]


@pytest.mark.asyncio
async def test_later_declared_field_wins_on_collision(bus) -> None:
    mapping = {
        "title": "headline",
        "subtitle": lambda record: {"headline": {"value": record["subtitle"]}},
    }
    migrator = RestMigrator(create_source_stream, ArticleModel, mapping, bus)

    results = await migrate_all(migrator)

    assert results[0]["headline"] == "A Comprehensive Guide"


@pytest.mark.asyncio
async def test_literal_patch_and_missing_value_default(bus) -> None:
    """Literal patches are used as given; descriptors without a value take the raw source value."""
    mapping = {
        "id": {"legacy_id": {"unique": True}, "state": "published"},
    }
    migrator = RestMigrator(create_source_stream, ArticleModel, mapping, bus)

    results = await migrate_all(migrator)

    assert [(r["legacy_id"], r["state"]) for r in results] == [(1, "published"), (2, "published")]


@pytest.mark.asyncio
async def test_none_values_are_not_written(bus) -> None:
    source = from_items([{"title": "A", "subtitle": None}])
    mapping = {"title": "title", "subtitle": "subtitle", "missing": "extra"}
    migrator = RestMigrator(source, ArticleModel, mapping, bus)

    results = await migrate_all(migrator)

    assert results == [{"id": 1, "title": "A"}]


@pytest.mark.asyncio
async def test_related_store_receives_sub_record_and_key_is_substituted(bus) -> None:
    migrator = RestMigrator(
        create_source_stream,
        ArticleModel,
        {"title": combine_title, "author": relate_author},
        bus,
    )

    results = await migrate_all(migrator)

    assert UserModel.upsert_calls == 2
    assert [r["author"] for r in results] == [1, 2]
    assert UserModel.mock_data[0] == {"id": 1, "name": "John Doe", "email": "john@example.com"}
    assert ArticleModel.mock_data[1]["author"] == 2

    relation_saves = [p for p in bus.of_kind("save") if p.is_relation]
    assert [p.field for p in relation_saves] == ["author", "author"]
    assert relation_saves[0].store == "UserModel"
    assert relation_saves[0].target_item["id"] == 1
    assert bus.relations_saved == 2
    assert bus.saved == 2


@pytest.mark.asyncio
async def test_model_alias_for_related_store(bus) -> None:
    def author(record):
        return {"author": {"value": {"name": record["author"]}, "model": UserModel}}

    migrator = RestMigrator(create_source_stream, ArticleModel, {"author": author}, bus)

    results = await migrate_all(migrator)

    assert [r["author"] for r in results] == [1, 2]


@pytest.mark.asyncio
async def test_complete_article_migration(bus) -> None:
    """Combine, split and relate fields of two source articles."""
    source = from_items([
        {"title": "A", "subtitle": "B", "keywords": "x,y,z", "author": "Jo", "email": "jo@x"},
        {"title": "C", "subtitle": "D", "keywords": "u,v", "author": "Al", "email": "al@x"},
    ])
    mapping = {
        "title": combine_title,
        "keywords": split_keywords,
        "author": relate_author,
    }
    migrator = RestMigrator(source, ArticleModel, mapping, bus)

    results = await migrate_all(migrator)

    assert len(results) == 2
    assert results[0]["title"] == "A: B"
    assert results[0]["category"] == "x"
    assert results[0]["tags"] == ["y", "z"]
    assert isinstance(results[0]["author"], int)
    assert results[0]["author"] == UserModel.mock_data[0]["id"]
    assert results[1]["tags"] == ["v"]
    assert UserModel.upsert_calls == 2


@pytest.mark.asyncio
async def test_duplicate_unique_value_is_skipped(bus) -> None:
    ArticleModel.mock_data.append(
        {"id": 1, "title": "Introduction to TypeScript: A Comprehensive Guide"}
    )

    def unique_title(record):
        return {"title": {"value": f"{record['title']}: {record['subtitle']}", "unique": True}}

    migrator = RestMigrator(create_source_stream, ArticleModel, {"title": unique_title}, bus)

    results = await migrate_all(migrator)

    assert [r["title"] for r in results] == ["MobX State Management: Made Simple"]
    assert ArticleModel.upsert_calls == 1

    skipped = bus.of_kind("skip")
    assert len(skipped) == 1
    assert skipped[0].index == 1
    assert isinstance(skipped[0].error, DuplicateError)
    assert skipped[0].error.field == "title"
    assert skipped[0].mapped_data["title"] == "Introduction to TypeScript: A Comprehensive Guide"
    assert [p.index for p in bus.of_kind("save")] == [2]


@pytest.mark.asyncio
async def test_duplicate_skips_relation_declared_after_it(bus) -> None:
    ArticleModel.mock_data.append({"id": 1, "legacy_id": 1})

    mapping = {
        "id": {"legacy_id": {"unique": True}},
        "author": relate_author,
    }
    migrator = RestMigrator(create_source_stream, ArticleModel, mapping, bus)

    results = await migrate_all(migrator)

    assert len(results) == 1
    assert UserModel.upsert_calls == 1
    assert bus.skipped == 1


@pytest.mark.asyncio
async def test_resolver_failure_is_reported_as_error(bus) -> None:
    def broken(record):
        if record["id"] == 1:
            raise ValueError("bad keywords")
        return {"category": {"value": "ok"}}

    mapping = {"title": "title", "keywords": broken}
    migrator = RestMigrator(create_source_stream, ArticleModel, mapping, bus)

    results = await migrate_all(migrator)

    assert len(results) == 1
    errors = bus.of_kind("error")
    assert len(errors) == 1
    assert isinstance(errors[0].error, MappingError)
    assert errors[0].error.source_field == "keywords"
    assert isinstance(errors[0].error.cause, ValueError)
    # Fields resolved before the failure are kept
    assert errors[0].mapped_data == {"title": "Introduction to TypeScript"}
    assert bus.skipped == 0


@pytest.mark.asyncio
async def test_primary_store_failure_is_reported_as_error(bus) -> None:
    migrator = RestMigrator(create_source_stream, FailingArticleModel, {"title": "title"}, bus)

    results = await migrate_all(migrator)

    assert results == []
    assert FailingArticleModel.upsert_calls == 2
    assert bus.errored == 2
    assert all(isinstance(p.error, PersistenceError) for p in bus.of_kind("error"))


@pytest.mark.asyncio
async def test_relation_failure_drops_field_but_saves_record(bus) -> None:
    def author(record):
        return {"author": {"value": {"name": record["author"]}, "related_store": FailingUserModel}}

    migrator = RestMigrator(
        create_source_stream,
        ArticleModel,
        {"title": "title", "author": author},
        bus,
    )

    results = await migrate_all(migrator)

    assert len(results) == 2
    assert all("author" not in r for r in results)
    assert FailingUserModel.upsert_calls == 2

    errors = bus.of_kind("error")
    assert [p.field for p in errors] == ["author", "author"]
    assert all(isinstance(p.error, RelationError) for p in errors)
    assert bus.relations_failed == 2
    assert bus.errored == 0
    assert bus.saved == 2


@pytest.mark.asyncio
async def test_index_counts_every_drawn_record(bus) -> None:
    ArticleModel.mock_data.append({"id": 99, "code": "dup"})
    source = from_items([
        {"code": "a"},
        {"code": "dup"},
        {"code": "boom"},
        {"code": "b"},
    ])

    def code(record):
        if record["code"] == "boom":
            raise RuntimeError("boom")
        return {"code": {"unique": True}}

    migrator = RestMigrator(source, ArticleModel, {"code": code}, bus)

    results = await migrate_all(migrator)

    assert [r["code"] for r in results] == ["a", "b"]
    assert [event["progress"].index for event in bus.events] == [1, 2, 3, 4]
    assert [event["kind"] for event in bus.events] == ["save", "skip", "error", "save"]


@pytest.mark.asyncio
async def test_dry_run_never_writes(bus) -> None:
    def unique_title(record):
        return {"title": {"value": record["title"], "unique": True}}

    mapping = {
        "title": unique_title,
        "keywords": split_keywords,
        "author": relate_author,
    }
    migrator = RestMigrator(create_source_stream, ArticleModel, mapping, bus)

    results = await migrate_all(migrator, {"dry_run": True})

    assert ArticleModel.upsert_calls == 0
    assert UserModel.upsert_calls == 0
    assert ArticleModel.mock_data == []
    assert len(results) == 2
    assert results[0] == {
        "title": "Introduction to TypeScript",
        "category": "typescript",
        "tags": ["javascript", "programming"],
        "author": {"name": "John Doe", "email": "john@example.com"},
    }
    assert bus.saved == 2
    assert bus.relations_saved == 0


@pytest.mark.asyncio
async def test_dry_run_option_accepts_camel_case(bus) -> None:
    migrator = RestMigrator(create_source_stream, ArticleModel, {"title": "title"}, bus)

    results = await migrate_all(migrator, {"dryRun": True})

    assert results == [{"title": "Introduction to TypeScript"}, {"title": "MobX State Management"}]
    assert ArticleModel.upsert_calls == 0


@pytest.mark.asyncio
async def test_concurrent_windows_yield_in_completion_order(bus) -> None:
    source = from_items([{"n": n} for n in range(1, 6)])

    async def slow_odd(record):
        await asyncio.sleep(0.05 if record["n"] % 2 == 1 else 0)
        return {"n": {"value": record["n"]}}

    migrator = RestMigrator(source, ArticleModel, {"n": slow_odd}, bus)

    results = [r async for r in migrator.boot({"concurrency": 2})]

    assert [r["n"] for r in results] == [2, 1, 4, 3, 5]

    saves = bus.of_kind("save")
    assert {p.source_item["n"]: p.index for p in saves} == {1: 1, 2: 2, 3: 3, 4: 4, 5: 5}
    assert {p.source_item["n"]: p.batch_ordinal for p in saves} == {1: 1, 2: 1, 3: 2, 4: 2, 5: 3}


@pytest.mark.asyncio
async def test_cancellation_stops_drawing(bus) -> None:
    drawn: List[int] = []

    def counting_source():
        for n in range(1, 10):
            drawn.append(n)
            yield {"n": n}

    token = CancellationToken()
    migrator = RestMigrator(counting_source, ArticleModel, {"n": "n"}, bus)

    results = []
    async for record in migrator.boot(cancel_token=token):
        results.append(record)
        token.cancel()

    assert len(results) == 1
    assert drawn == [1]
    assert len(bus.events) == 1


@pytest.mark.asyncio
async def test_closing_early_finishes_drawn_window(bus) -> None:
    source = from_items([{"n": n} for n in range(1, 6)])

    async def slow_first(record):
        await asyncio.sleep(0.05 if record["n"] == 1 else 0)
        return {"n": {"value": record["n"]}}

    migrator = RestMigrator(source, ArticleModel, {"n": slow_first}, bus)
    run = migrator.boot({"concurrency": 2})

    first = await run.__anext__()
    await run.aclose()

    assert first["n"] == 2
    assert ArticleModel.upsert_calls == 2
    assert bus.saved == 2


@pytest.mark.asyncio
async def test_source_failure_propagates(bus) -> None:
    async def broken_source():
        yield {"title": "first"}
        raise RuntimeError("source went away")

    migrator = RestMigrator(broken_source, ArticleModel, {"title": "title"}, bus)

    results = []
    with pytest.raises(RuntimeError, match="source went away"):
        async for record in migrator.boot():
            results.append(record)

    assert [r["title"] for r in results] == ["first"]


@pytest.mark.asyncio
async def test_source_failure_mid_window_still_reports_drawn_records(bus) -> None:
    async def broken_source():
        yield {"title": "first"}
        raise RuntimeError("source went away")

    migrator = RestMigrator(broken_source, ArticleModel, {"title": "title"}, bus)

    results = []
    with pytest.raises(RuntimeError, match="source went away"):
        async for record in migrator.boot({"concurrency": 2}):
            results.append(record)

    assert [r["title"] for r in results] == ["first"]
    assert ArticleModel.upsert_calls == 1
    assert len(bus.events) == 1
    assert bus.events[0]["kind"] == "save"
    assert bus.events[0]["progress"].index == 1


@pytest.mark.asyncio
async def test_source_options_are_passed_to_factory(bus) -> None:
    def paged_source(config):
        return [{"page": config["page"], "n": n} for n in range(config["size"])]

    migrator = RestMigrator(
        paged_source,
        ArticleModel,
        {"page": "page", "n": "n"},
        bus,
        source_options={"page": 3, "size": 2},
    )

    results = await migrate_all(migrator)

    assert [(r["page"], r["n"]) for r in results] == [(3, 0), (3, 1)]


@pytest.mark.asyncio
async def test_primary_store_created_once_per_boot(bus) -> None:
    created = []

    def factory():
        created.append(1)
        return ArticleModel()

    migrator = RestMigrator(create_source_stream, factory, {"title": "title"}, bus)

    await migrate_all(migrator)
    await migrate_all(migrator)

    assert len(created) == 2
    assert ArticleModel.upsert_calls == 4


def test_unsupported_mapping_type_is_rejected() -> None:
    with pytest.raises(TypeError, match="keywords"):
        RestMigrator(create_source_stream, ArticleModel, {"keywords": 42})


@pytest.mark.asyncio
async def test_invalid_concurrency_is_rejected(bus) -> None:
    migrator = RestMigrator(create_source_stream, ArticleModel, {"title": "title"}, bus)

    with pytest.raises(ValidationError):
        await migrate_all(migrator, {"concurrency": 0})
