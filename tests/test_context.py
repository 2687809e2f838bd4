"""
Tests for QueryContext execution, save, use and prefixes.
"""

import pytest

from helpers import envelope
from reactive_query import ContextState, QueryBuilder, QueryContext
from reactive_query.exceptions import AuthenticationError, ServerError


class TestExec:
    """Test query execution."""

    @pytest.mark.asyncio
    async def test_exec_extracts_rows(self, client, fake_transport, posts_query):
        fake_transport.queue(envelope([{"id": 1, "title": "a"}]))

        ctx = await client.query(posts_query).exec()

        assert isinstance(ctx, QueryContext)
        assert ctx.data == [{"id": 1, "title": "a"}]
        assert ctx.error is None
        assert ctx.state == ContextState.SUCCESS
        assert fake_transport.last_query == "query { data: posts { id title } }"

    @pytest.mark.asyncio
    async def test_exec_uses_alias(self, client, fake_transport):
        fake_transport.queue(envelope([{"id": 7}], alias="items"))

        ctx = await client.query(QueryBuilder("posts").select(["id"]).as_("items")).exec()

        assert ctx.data == [{"id": 7}]

    @pytest.mark.asyncio
    async def test_missing_alias_gives_empty_list(self, client, fake_transport, posts_query):
        fake_transport.queue({"data": {}})

        ctx = await client.query(posts_query).exec()

        assert ctx.data == []
        assert ctx.error is None

    @pytest.mark.asyncio
    async def test_map_applied_per_row(self, client, fake_transport):
        fake_transport.queue(envelope([{"id": 1}, {"id": 2}]))
        query = QueryBuilder("posts").select(["id"]).map(lambda row: row["id"] * 10)

        ctx = await client.query(query).exec()

        assert ctx.data == [10, 20]

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self, client, fake_transport, posts_query):
        error = ServerError("Server error", 502)
        fake_transport.queue(envelope([{"id": 1}]), error)
        ctx = client.query(posts_query)

        await ctx.exec()
        await ctx.exec()

        assert ctx.data is None
        assert ctx.error is error
        assert ctx.state == ContextState.FAILED

    @pytest.mark.asyncio
    async def test_exec_retries_with_query_attempts(self, client, fake_transport, posts_query):
        client.config.query_attempts = 2
        fake_transport.queue(ServerError("Server error", 503), envelope([{"id": 1}]))

        ctx = await client.query(posts_query).exec()

        assert ctx.data == [{"id": 1}]
        assert len(fake_transport.queries) == 2

    @pytest.mark.asyncio
    async def test_exec_does_not_retry_auth_failure(self, client, fake_transport, posts_query):
        client.config.query_attempts = 3
        error = AuthenticationError("Authentication failed", 401)
        fake_transport.queue(error, envelope([{"id": 1}]))

        ctx = await client.query(posts_query).exec()

        assert ctx.error is error
        assert len(fake_transport.queries) == 1

    @pytest.mark.asyncio
    async def test_exec_does_not_write_store(self, client, fake_transport, posts_query):
        fake_transport.queue(envelope([{"id": 1}]))

        await client.query(posts_query).exec()

        assert client.get("posts") is None

    @pytest.mark.asyncio
    async def test_exec_flags_existing_entry_loading(
        self, client, fake_transport, posts_query, emissions
    ):
        client.save("posts", {"data": [], "loading": False})
        emissions.clear()

        await client.query(posts_query).exec()

        assert emissions == [{"data": [], "loading": True}]
        assert client.get("posts.loading") is True

    @pytest.mark.asyncio
    async def test_preserve_skips_loading_flag(self, client, fake_transport, emissions):
        client.save("posts", {"data": [], "loading": False})
        emissions.clear()

        await client.query(QueryBuilder("posts").select(["id"]).preserve()).exec()

        assert emissions == []
        assert client.get("posts.loading") is False

    @pytest.mark.asyncio
    async def test_token_sent_as_bearer(self, client, fake_transport, posts_query):
        client.set_token("secret-token")

        await client.query(posts_query).exec()

        headers = fake_transport.queries[-1][1]
        assert headers["Authorization"] == "Bearer secret-token"
        assert headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_no_token_no_authorization(self, client, fake_transport, posts_query):
        await client.query(posts_query).exec()

        assert "Authorization" not in fake_transport.queries[-1][1]


class TestTranslation:
    """Test the language filter on translated queries."""

    @pytest.mark.asyncio
    async def test_translated_query_gets_language_filter(self, client, fake_transport):
        client.set_language("fr")
        query = QueryBuilder("pages").select(["title"]).where({"slug": {"eq": "home"}}).translated()

        await client.query(query).exec()

        assert fake_transport.last_query == (
            'query { data: pages(filter: {slug:{eq:"home"},language:{eq:"fr"}}) { title } }'
        )
        assert query.options.filter == {"slug": {"eq": "home"}}

    @pytest.mark.asyncio
    async def test_untranslated_query_is_untouched(self, client, fake_transport):
        client.set_language("fr")

        await client.query(QueryBuilder("pages_translations").select(["title"])).exec()

        assert "language" not in fake_transport.last_query

    @pytest.mark.asyncio
    async def test_no_language_no_filter(self, client, fake_transport):
        await client.query(QueryBuilder("pages").select(["title"]).translated()).exec()

        assert fake_transport.last_query == "query { data: pages { title } }"

    @pytest.mark.asyncio
    async def test_translation_marker(self, client, fake_transport):
        client.config.translation_marker = "translations"
        client.set_language("de")

        await client.query(QueryBuilder("pages_translations").select(["title"])).exec()

        assert 'language:{eq:"de"}' in fake_transport.last_query

    @pytest.mark.asyncio
    async def test_custom_language_field(self, client, fake_transport):
        client.config.language_field = "languages_code"
        client.set_language("en")

        await client.query(QueryBuilder("pages").select(["title"]).translated()).exec()

        assert 'languages_code:{eq:"en"}' in fake_transport.last_query


class TestSave:
    """Test writing results into the store."""

    @pytest.mark.asyncio
    async def test_save_without_arguments(self, client, fake_transport, posts_query, emissions):
        fake_transport.queue(envelope([{"id": 1}]))
        client.save("posts", {"data": None, "extra": True})

        ctx = await client.query(posts_query).exec()
        emissions.clear()
        ctx.save()

        assert client.get("posts") == {"data": [{"id": 1}]}
        assert emissions == [{"data": [{"id": 1}]}]

    @pytest.mark.asyncio
    async def test_save_field_into_path(self, client, fake_transport):
        fake_transport.queue(envelope({"name": "Site", "slug": "site"}))

        ctx = await client.query(QueryBuilder("settings").select(["name", "slug"])).exec()
        ctx.save("name", "meta.title")

        assert client.get("settings.meta.title") == "Site"

    @pytest.mark.asyncio
    async def test_save_extracts_per_row(self, client, fake_transport, posts_query):
        fake_transport.queue(envelope([{"id": 1, "title": "a"}, {"id": 2, "title": "b"}]))

        ctx = await client.query(posts_query).exec()
        ctx.save("id", "ids", "title", "labels.all")

        assert client.get("posts") == {"ids": [1, 2], "labels": {"all": ["a", "b"]}}

    @pytest.mark.asyncio
    async def test_save_composes_entries(self, client, fake_transport, emissions):
        fake_transport.queue(envelope({"count": 3}), envelope({"title": "Posts"}))

        stats = await client.query(QueryBuilder("posts").select(["count"])).exec()
        meta = await client.query(QueryBuilder("posts").select(["title"])).exec()
        stats.save("count", "stats.count")
        meta.save("title", "meta.title")

        assert client.get("posts") == {"stats": {"count": 3}, "meta": {"title": "Posts"}}
        assert len(emissions) == 2

    def test_save_odd_arguments_raise(self, client, posts_query):
        with pytest.raises(ValueError):
            client.query(posts_query).save("name")


class TestUse:
    """Test publishing a context as a store entry."""

    @pytest.mark.asyncio
    async def test_use_publishes_entry(self, client, fake_transport, posts_query, emissions):
        fake_transport.queue(envelope([{"id": 1}]))

        ctx = await client.query(posts_query).exec()
        entry = ctx.use()

        assert client.get("posts") is entry
        assert entry["data"] == [{"id": 1}]
        assert entry["loading"] is False
        assert entry["error"] is None
        assert callable(entry["refetch"])
        assert len(emissions) == 1

    def test_use_before_exec_is_loading(self, client, posts_query):
        entry = client.query(posts_query).use()

        assert entry["data"] is None
        assert entry["loading"] is True

    @pytest.mark.asyncio
    async def test_empty_result_is_not_loading(self, client, fake_transport, posts_query):
        ctx = await client.query(posts_query).exec()

        assert ctx.use()["loading"] is False

    @pytest.mark.asyncio
    async def test_use_watch_closures(self, client, fake_transport, posts_query):
        fake_transport.queue(envelope([{"id": 1}]))
        entry = client.query(posts_query).use()
        seen = []
        entry["watch"]("loading", seen.append)
        entry["watch_deep"]("data.0.id", seen.append)

        ctx = await client.query(posts_query).exec()
        ctx.use()

        assert seen == [True, False, 1]


class TestPrefix:
    """Test store key prefixes."""

    @pytest.mark.asyncio
    async def test_prefix_changes_store_key(self, client, fake_transport, posts_query):
        fake_transport.queue(envelope([{"id": 1}]))

        ctx = await client.query(posts_query).prefix("latest_posts").exec()
        ctx.use()

        assert ctx.store_key == "latest_posts"
        assert client.get("latest_posts.data") == [{"id": 1}]
        assert client.get("posts") is None

    def test_prefix_applies_to_table(self, client, posts_query):
        client.query(posts_query).prefix("featured")

        assert client.query(QueryBuilder("posts")).store_key == "featured"
        assert client.resolve_store_key("pages") == "pages"
