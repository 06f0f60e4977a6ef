"""Tests for deck and board endpoints."""

from collections.abc import Awaitable, Callable

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardnexus.db.community import DeckDraft, PostDraft, create_deck, create_post
from cardnexus.models.db import CardDB, DeckDB, PostDB, UserDB
from cardnexus.models.enums import PostCategory

UserFactory = Callable[..., Awaitable[UserDB]]
CardFactory = Callable[..., Awaitable[CardDB]]


def as_user(user: UserDB) -> dict[str, str]:
    return {"X-User-Id": str(user.id)}


class TestCreateDeck:
    @pytest.fixture
    async def builder(self, session: AsyncSession, make_user: UserFactory) -> UserDB:
        user = await make_user("builder")
        await session.commit()
        return user

    async def test_create_and_view(
        self,
        client: AsyncClient,
        session: AsyncSession,
        builder: UserDB,
        make_card: CardFactory,
    ) -> None:
        pikachu = await make_card("Pikachu")
        raichu = await make_card("Raichu")
        await session.commit()

        response = await client.post(
            "/decks",
            json={
                "name": " Volt ",
                "game_title": "ポケモンカード",
                "format": "Standard",
                "is_public": True,
                "cards": [
                    {"card_id": pikachu.id, "quantity": 3},
                    {"card_id": raichu.id, "quantity": 2},
                    {"card_id": pikachu.id, "quantity": 1},
                ],
                "tags": ["aggro", " "],
            },
            headers=as_user(builder),
        )

        assert response.status_code == 201
        deck_id = response.json()["data"]["deck_id"]

        detail = (await client.get(f"/decks/{deck_id}", headers=as_user(builder))).json()["data"]
        assert detail["name"] == "Volt"
        assert detail["is_owner"] is True
        assert detail["is_liked"] is False
        assert detail["tags"] == ["aggro"]
        assert detail["card_count"] == 2
        assert {c["name"]: c["quantity"] for c in detail["cards"]} == {"Pikachu": 4, "Raichu": 2}
        assert detail["user"]["username"] == "builder"

    async def test_requires_name_and_game(self, client: AsyncClient, builder: UserDB) -> None:
        no_name = await client.post(
            "/decks", json={"game_title": "g"}, headers=as_user(builder)
        )
        no_game = await client.post("/decks", json={"name": "x"}, headers=as_user(builder))

        assert no_name.status_code == 400
        assert no_game.status_code == 400

    async def test_unknown_card_writes_nothing(
        self, client: AsyncClient, session: AsyncSession, builder: UserDB
    ) -> None:
        response = await client.post(
            "/decks",
            json={"name": "x", "game_title": "g", "cards": [{"card_id": 999, "quantity": 1}]},
            headers=as_user(builder),
        )

        assert response.status_code == 404
        decks = (await session.execute(select(func.count()).select_from(DeckDB))).scalar_one()
        assert decks == 0

    async def test_anonymous_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/decks", json={"name": "x", "game_title": "g"})

        assert response.status_code == 401


class TestDeckViews:
    @pytest.fixture
    async def decks(self, session: AsyncSession, make_user: UserFactory) -> dict[str, int]:
        owner = await make_user("owner")
        visitor = await make_user("visitor")
        public = await create_deck(session, owner.id, DeckDraft("Public", "g", is_public=True))
        private = await create_deck(session, owner.id, DeckDraft("Private", "g"))
        await session.commit()
        return {
            "owner": owner.id,
            "visitor": visitor.id,
            "public": public.id,
            "private": private.id,
        }

    async def test_list_public_only(self, client: AsyncClient, decks: dict[str, int]) -> None:
        data = (await client.get("/decks")).json()["data"]

        assert [d["name"] for d in data["decks"]] == ["Public"]
        assert data["pagination"]["limit"] == 12

    async def test_list_by_user_includes_private(
        self, client: AsyncClient, decks: dict[str, int]
    ) -> None:
        data = (await client.get("/decks", params={"user_id": decks["owner"]})).json()["data"]

        assert data["pagination"]["total_count"] == 2

    async def test_private_deck_hidden_from_others(
        self, client: AsyncClient, decks: dict[str, int]
    ) -> None:
        anonymous = await client.get(f"/decks/{decks['private']}")
        visitor = await client.get(
            f"/decks/{decks['private']}", headers={"X-User-Id": str(decks["visitor"])}
        )
        owner = await client.get(
            f"/decks/{decks['private']}", headers={"X-User-Id": str(decks["owner"])}
        )

        assert anonymous.status_code == 403
        assert visitor.status_code == 403
        assert owner.status_code == 200

    async def test_views_counted_for_visitors_only(
        self, client: AsyncClient, decks: dict[str, int]
    ) -> None:
        url = f"/decks/{decks['public']}"

        first = (await client.get(url)).json()["data"]
        second = (await client.get(url)).json()["data"]
        by_owner = (
            await client.get(url, headers={"X-User-Id": str(decks["owner"])})
        ).json()["data"]

        assert first["view_count"] == 1
        assert second["view_count"] == 2
        assert by_owner["view_count"] == 2

    async def test_unknown_deck(self, client: AsyncClient) -> None:
        assert (await client.get("/decks/999")).status_code == 404

    async def test_like_toggle(self, client: AsyncClient, decks: dict[str, int]) -> None:
        url = f"/decks/{decks['public']}/like"
        headers = {"X-User-Id": str(decks["visitor"])}

        liked = (await client.post(url, headers=headers)).json()["data"]
        detail = (await client.get(f"/decks/{decks['public']}", headers=headers)).json()["data"]
        unliked = (await client.post(url, headers=headers)).json()["data"]

        assert liked == {"is_liked": True, "like_count": 1}
        assert detail["is_liked"] is True
        assert detail["like_count"] == 1
        assert unliked == {"is_liked": False, "like_count": 0}

    async def test_like_requires_user(self, client: AsyncClient, decks: dict[str, int]) -> None:
        assert (await client.post(f"/decks/{decks['public']}/like")).status_code == 401


class TestBoard:
    @pytest.fixture
    async def author(self, session: AsyncSession, make_user: UserFactory) -> UserDB:
        user = await make_user("author")
        await session.commit()
        return user

    async def test_create_post(
        self,
        client: AsyncClient,
        session: AsyncSession,
        author: UserDB,
        make_card: CardFactory,
    ) -> None:
        card = await make_card("Pikachu")
        await session.commit()

        response = await client.post(
            "/board",
            json={
                "title": " Best Pikachu deck? ",
                "content": "Looking for advice",
                "category": "QUESTION",
                "tags": ["pikachu"],
                "card_id": card.id,
            },
            headers=as_user(author),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Best Pikachu deck?"
        assert data["category"] == "QUESTION"
        assert data["tags"] == ["pikachu"]
        assert data["card"]["name"] == "Pikachu"
        assert data["author"]["username"] == "author"
        assert data["comments"] == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"title": "", "content": "x"},
            {"title": "x" * 101, "content": "x"},
            {"title": "x", "content": " "},
            {"title": "x", "content": "x" * 10001},
            {"title": "x", "content": "x", "category": "MEMES"},
        ],
    )
    async def test_invalid_post(
        self, client: AsyncClient, author: UserDB, payload: dict[str, str]
    ) -> None:
        response = await client.post("/board", json=payload, headers=as_user(author))

        assert response.status_code == 400

    async def test_post_with_unknown_card(self, client: AsyncClient, author: UserDB) -> None:
        response = await client.post(
            "/board",
            json={"title": "x", "content": "x", "card_id": 999},
            headers=as_user(author),
        )

        assert response.status_code == 404

    async def test_list_with_excerpt_and_counts(
        self, client: AsyncClient, session: AsyncSession, author: UserDB
    ) -> None:
        await create_post(
            session, author.id, PostDraft("Long", "y" * 250, PostCategory.GENERAL)
        )
        await create_post(session, author.id, PostDraft("News", "short", PostCategory.NEWS))
        await session.commit()

        everything = (await client.get("/board")).json()["data"]
        news = (await client.get("/board", params={"category": "NEWS"})).json()["data"]

        by_title = {p["title"]: p for p in everything["posts"]}
        assert by_title["Long"]["excerpt"] == "y" * 200 + "..."
        assert by_title["News"]["excerpt"] == "short"
        assert by_title["News"]["comment_count"] == 0
        assert [p["title"] for p in news["posts"]] == ["News"]

    async def test_pinned_first(
        self, client: AsyncClient, session: AsyncSession, author: UserDB
    ) -> None:
        pinned = await create_post(
            session, author.id, PostDraft("Rules", "read me", PostCategory.NEWS)
        )
        await create_post(session, author.id, PostDraft("Later", "hi", PostCategory.GENERAL))
        pinned.is_pinned = True
        await session.commit()

        data = (await client.get("/board")).json()["data"]

        assert data["posts"][0]["title"] == "Rules"

    async def test_comment_thread(
        self, client: AsyncClient, session: AsyncSession, author: UserDB
    ) -> None:
        post = await create_post(session, author.id, PostDraft("T", "C", PostCategory.GENERAL))
        await session.commit()
        url = f"/board/{post.id}/comments"
        headers = as_user(author)

        first = (await client.post(url, json={"content": "first"}, headers=headers)).json()
        second = (await client.post(url, json={"content": "second"}, headers=headers)).json()
        reply_a = await client.post(
            url, json={"content": "reply a", "parent_id": first["data"]["id"]}, headers=headers
        )
        reply_b = await client.post(
            url, json={"content": "reply b", "parent_id": first["data"]["id"]}, headers=headers
        )

        assert reply_a.status_code == 201
        assert reply_b.status_code == 201
        detail = (await client.get(f"/board/{post.id}")).json()["data"]
        assert detail["comment_count"] == 4
        assert detail["view_count"] == 1
        roots = detail["comments"]
        assert [c["content"] for c in roots] == ["second", "first"]
        assert roots[0]["id"] == second["data"]["id"]
        assert [r["content"] for r in roots[1]["replies"]] == ["reply a", "reply b"]

    async def test_comment_on_locked_post(
        self, client: AsyncClient, session: AsyncSession, author: UserDB
    ) -> None:
        post = await create_post(session, author.id, PostDraft("T", "C", PostCategory.GENERAL))
        post.is_locked = True
        await session.commit()

        response = await client.post(
            f"/board/{post.id}/comments", json={"content": "hi"}, headers=as_user(author)
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "POST_LOCKED"

    async def test_reply_to_comment_of_other_post(
        self, client: AsyncClient, session: AsyncSession, author: UserDB
    ) -> None:
        one = await create_post(session, author.id, PostDraft("One", "C", PostCategory.GENERAL))
        two = await create_post(session, author.id, PostDraft("Two", "C", PostCategory.GENERAL))
        await session.commit()
        headers = as_user(author)

        comment = (
            await client.post(f"/board/{one.id}/comments", json={"content": "x"}, headers=headers)
        ).json()["data"]
        cross = await client.post(
            f"/board/{two.id}/comments",
            json={"content": "y", "parent_id": comment["id"]},
            headers=headers,
        )
        missing = await client.post(
            f"/board/{two.id}/comments", json={"content": "y", "parent_id": 999}, headers=headers
        )

        assert cross.status_code == 400
        assert missing.status_code == 404

    async def test_comment_validation(
        self, client: AsyncClient, session: AsyncSession, author: UserDB
    ) -> None:
        post = await create_post(session, author.id, PostDraft("T", "C", PostCategory.GENERAL))
        await session.commit()
        url = f"/board/{post.id}/comments"

        empty = await client.post(url, json={"content": "  "}, headers=as_user(author))
        too_long = await client.post(url, json={"content": "x" * 2001}, headers=as_user(author))
        no_post = await client.post(
            "/board/999/comments", json={"content": "x"}, headers=as_user(author)
        )

        assert empty.status_code == 400
        assert too_long.status_code == 400
        assert no_post.status_code == 404

    async def test_unknown_post(self, client: AsyncClient) -> None:
        assert (await client.get("/board/999")).status_code == 404

    async def test_post_count_unchanged_by_failed_create(
        self, client: AsyncClient, session: AsyncSession, author: UserDB
    ) -> None:
        await client.post("/board", json={"title": "", "content": "x"}, headers=as_user(author))

        posts = (await session.execute(select(func.count()).select_from(PostDB))).scalar_one()
        assert posts == 0
