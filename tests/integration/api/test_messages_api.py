"""Integration tests for Messages API."""

from collections.abc import Awaitable, Callable
from uuid import uuid4

import pytest
from httpx import AsyncClient

from domain.entities.member import Member

Headers = Callable[[Member], dict[str, str]]
MakeMember = Callable[..., Awaitable[Member]]


@pytest.fixture
async def aiko(make_member: MakeMember) -> Member:
    return await make_member("Aiko")


@pytest.fixture
async def bruno(make_member: MakeMember) -> Member:
    return await make_member("Bruno")


@pytest.fixture
async def group_id(
    api_client: AsyncClient, headers_for: Headers, aiko: Member, bruno: Member
) -> str:
    """A public sub-group owned by Aiko that Bruno has joined."""
    response = await api_client.post(
        "/api/v1/groups",
        json={"name": "Weekend Randori", "type": "sub-group"},
        headers=headers_for(aiko),
    )
    gid = response.json()["data"]["id"]
    await api_client.post(f"/api/v1/groups/{gid}/join", headers=headers_for(bruno))
    return gid


async def send(
    client: AsyncClient, group_id: str, headers: dict[str, str], content: str, **extra: object
) -> dict:
    response = await client.post(
        f"/api/v1/groups/{group_id}/messages",
        json={"content": content, **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_member_sends(
        self, api_client: AsyncClient, headers_for: Headers, bruno: Member, group_id: str
    ):
        message = await send(api_client, group_id, headers_for(bruno), "Osu!")

        assert message["content"] == "Osu!"
        assert message["sender_name"] == "Bruno"
        assert message["type"] == "text"
        assert message["read_by"] == [str(bruno.id)]
        assert message["reactions"] == []

    @pytest.mark.asyncio
    async def test_non_member_forbidden(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        make_member: MakeMember,
        group_id: str,
    ):
        outsider = await make_member("Dara")

        response = await api_client.post(
            f"/api/v1/groups/{group_id}/messages",
            json={"content": "Let me in"},
            headers=headers_for(outsider),
        )

        assert response.status_code == 403
        assert response.json()["message"] == "You must be a member of this group to send messages"

    @pytest.mark.asyncio
    async def test_system_type_rejected(
        self, api_client: AsyncClient, headers_for: Headers, aiko: Member, group_id: str
    ):
        response = await api_client.post(
            f"/api/v1/groups/{group_id}/messages",
            json={"content": "Fake announcement", "type": "system"},
            headers=headers_for(aiko),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_retry_with_client_message_id(
        self, api_client: AsyncClient, headers_for: Headers, bruno: Member, group_id: str
    ):
        first = await send(
            api_client, group_id, headers_for(bruno), "Osu!", client_message_id="retry-1"
        )
        second = await send(
            api_client, group_id, headers_for(bruno), "Osu!", client_message_id="retry-1"
        )

        assert second["id"] == first["id"]
        search = await api_client.get(
            f"/api/v1/groups/{group_id}/messages/search",
            params={"q": "osu"},
            headers=headers_for(bruno),
        )
        assert search.json()["meta"]["total"] == 1

    @pytest.mark.asyncio
    async def test_reply_preview_and_attachments(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        aiko: Member,
        bruno: Member,
        group_id: str,
    ):
        question = await send(api_client, group_id, headers_for(aiko), "Who has the podium photo?")
        answer = await send(
            api_client,
            group_id,
            headers_for(bruno),
            "Here",
            type="image",
            reply_to=question["id"],
            attachments=[
                {
                    "name": "podium.jpg",
                    "url": "https://cdn.dojo.test/podium.jpg",
                    "size": 20480,
                    "mime_type": "image/jpeg",
                }
            ],
        )

        response = await api_client.get(
            f"/api/v1/messages/{answer['id']}", headers=headers_for(aiko)
        )

        data = response.json()["data"]
        assert data["type"] == "image"
        assert data["attachments"][0]["name"] == "podium.jpg"
        assert data["reply_to"] == question["id"]
        assert data["reply_to_message"]["content"] == "Who has the podium photo?"
        assert data["reply_to_message"]["sender_name"] == "Aiko"


class TestHistory:
    @pytest.mark.asyncio
    async def test_pages_backwards_in_reading_order(
        self, api_client: AsyncClient, headers_for: Headers, aiko: Member, group_id: str
    ):
        headers = headers_for(aiko)
        for content in ("one", "two", "three"):
            await send(api_client, group_id, headers, content)
        url = f"/api/v1/groups/{group_id}/messages"

        newest = await api_client.get(url, params={"limit": 2}, headers=headers)
        older = await api_client.get(
            url,
            params={"limit": 2, "before": newest.json()["meta"]["oldest"]},
            headers=headers,
        )

        assert [m["content"] for m in newest.json()["data"]] == ["two", "three"]
        assert [m["content"] for m in older.json()["data"]] == [
            "Bruno joined the group",
            "one",
        ]

    @pytest.mark.asyncio
    async def test_limit_out_of_range(
        self, api_client: AsyncClient, headers_for: Headers, aiko: Member, group_id: str
    ):
        response = await api_client.get(
            f"/api/v1/groups/{group_id}/messages",
            params={"limit": 0},
            headers=headers_for(aiko),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_message(
        self, api_client: AsyncClient, headers_for: Headers, aiko: Member
    ):
        response = await api_client.get(
            f"/api/v1/messages/{uuid4()}", headers=headers_for(aiko)
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "MESSAGE_NOT_FOUND"


class TestSearch:
    @pytest.mark.asyncio
    async def test_matches_content_and_sender_case_insensitively(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        aiko: Member,
        bruno: Member,
        group_id: str,
    ):
        await send(api_client, group_id, headers_for(aiko), "Randori at NINE")
        await send(api_client, group_id, headers_for(bruno), "Bring your belt")
        url = f"/api/v1/groups/{group_id}/messages/search"

        by_content = await api_client.get(url, params={"q": "nine"}, headers=headers_for(aiko))
        by_sender = await api_client.get(url, params={"q": "BRUNO"}, headers=headers_for(aiko))

        assert [m["content"] for m in by_content.json()["data"]] == ["Randori at NINE"]
        # "Bruno joined the group" is attributed to Bruno as well
        assert [m["content"] for m in by_sender.json()["data"]] == [
            "Bring your belt",
            "Bruno joined the group",
        ]

    @pytest.mark.asyncio
    async def test_skips_deleted_messages(
        self, api_client: AsyncClient, headers_for: Headers, aiko: Member, group_id: str
    ):
        message = await send(api_client, group_id, headers_for(aiko), "Secret technique")
        await api_client.delete(f"/api/v1/messages/{message['id']}", headers=headers_for(aiko))

        response = await api_client.get(
            f"/api/v1/groups/{group_id}/messages/search",
            params={"q": "technique"},
            headers=headers_for(aiko),
        )

        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(
        self, api_client: AsyncClient, headers_for: Headers, aiko: Member, group_id: str
    ):
        await send(api_client, group_id, headers_for(aiko), "Fees are 100% due Friday")

        response = await api_client.get(
            f"/api/v1/groups/{group_id}/messages/search",
            params={"q": "_"},
            headers=headers_for(aiko),
        )

        assert response.json()["data"] == []


class TestEditAndDelete:
    @pytest.mark.asyncio
    async def test_author_edits(
        self, api_client: AsyncClient, headers_for: Headers, bruno: Member, group_id: str
    ):
        message = await send(api_client, group_id, headers_for(bruno), "Mats at 9")

        response = await api_client.patch(
            f"/api/v1/messages/{message['id']}",
            json={"content": "Mats at 8:30"},
            headers=headers_for(bruno),
        )

        data = response.json()["data"]
        assert data["content"] == "Mats at 8:30"
        assert data["edited"] is True
        assert data["edited_at"] is not None

    @pytest.mark.asyncio
    async def test_owner_moderates_but_member_cannot(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        aiko: Member,
        bruno: Member,
        group_id: str,
    ):
        from_aiko = await send(api_client, group_id, headers_for(aiko), "Dues are due")
        from_bruno = await send(api_client, group_id, headers_for(bruno), "Off topic")

        hijack = await api_client.patch(
            f"/api/v1/messages/{from_aiko['id']}",
            json={"content": "No dues"},
            headers=headers_for(bruno),
        )
        moderated = await api_client.delete(
            f"/api/v1/messages/{from_bruno['id']}", headers=headers_for(aiko)
        )

        assert hijack.status_code == 403
        assert hijack.json()["message"] == "You can only modify your own messages"
        assert moderated.status_code == 204

    @pytest.mark.asyncio
    async def test_system_messages_are_immutable(
        self, api_client: AsyncClient, headers_for: Headers, aiko: Member, group_id: str
    ):
        history = await api_client.get(
            f"/api/v1/groups/{group_id}/messages", headers=headers_for(aiko)
        )
        announcement = history.json()["data"][0]

        response = await api_client.delete(
            f"/api/v1/messages/{announcement['id']}", headers=headers_for(aiko)
        )

        assert response.status_code == 403
        assert response.json()["message"] == "System messages cannot be modified"

    @pytest.mark.asyncio
    async def test_soft_delete(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        aiko: Member,
        bruno: Member,
        group_id: str,
    ):
        original = await send(api_client, group_id, headers_for(bruno), "Wrong chat")
        reply = await send(
            api_client, group_id, headers_for(aiko), "Happens", reply_to=original["id"]
        )
        url = f"/api/v1/messages/{original['id']}"

        first = await api_client.delete(url, headers=headers_for(bruno))
        second = await api_client.delete(url, headers=headers_for(bruno))
        edit = await api_client.patch(
            url, json={"content": "Undo"}, headers=headers_for(bruno)
        )
        fetched = await api_client.get(url, headers=headers_for(bruno))
        replying = await api_client.get(
            f"/api/v1/messages/{reply['id']}", headers=headers_for(bruno)
        )

        assert first.status_code == 204
        assert second.status_code == 204
        assert edit.status_code == 400
        assert edit.json()["error_code"] == "MESSAGE_DELETED"
        data = fetched.json()["data"]
        assert data["deleted"] is True
        assert data["content"] == "This message has been deleted"
        assert replying.json()["data"]["reply_to_message"]["content"] == (
            "This message has been deleted"
        )


class TestReactions:
    @pytest.mark.asyncio
    async def test_add_and_remove(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        aiko: Member,
        bruno: Member,
        group_id: str,
    ):
        message = await send(api_client, group_id, headers_for(aiko), "Gold in Paris!")
        url = f"/api/v1/messages/{message['id']}/reactions"

        added = await api_client.post(url, json={"emoji": "🥇"}, headers=headers_for(bruno))
        duplicate = await api_client.post(url, json={"emoji": "🥇"}, headers=headers_for(bruno))
        also = await api_client.post(url, json={"emoji": "🥇"}, headers=headers_for(aiko))

        assert added.status_code == 201
        assert added.json()["data"]["reactions"] == [
            {"emoji": "🥇", "member_id": str(bruno.id), "member_name": "Bruno"}
        ]
        assert duplicate.status_code == 409
        assert duplicate.json()["error_code"] == "DUPLICATE_REACTION"
        assert len(also.json()["data"]["reactions"]) == 2

        removed = await api_client.delete(f"{url}/🥇", headers=headers_for(bruno))
        missing = await api_client.delete(f"{url}/🥇", headers=headers_for(bruno))

        assert removed.status_code == 200
        assert [r["member_name"] for r in removed.json()["data"]["reactions"]] == ["Aiko"]
        assert missing.status_code == 404
        assert missing.json()["error_code"] == "REACTION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_non_member_cannot_react(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        aiko: Member,
        make_member: MakeMember,
        group_id: str,
    ):
        outsider = await make_member("Dara")
        message = await send(api_client, group_id, headers_for(aiko), "Members only")

        response = await api_client.post(
            f"/api/v1/messages/{message['id']}/reactions",
            json={"emoji": "👍"},
            headers=headers_for(outsider),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cannot_react_to_deleted(
        self, api_client: AsyncClient, headers_for: Headers, aiko: Member, group_id: str
    ):
        message = await send(api_client, group_id, headers_for(aiko), "Oops")
        await api_client.delete(f"/api/v1/messages/{message['id']}", headers=headers_for(aiko))

        response = await api_client.post(
            f"/api/v1/messages/{message['id']}/reactions",
            json={"emoji": "👍"},
            headers=headers_for(aiko),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot react to a deleted message"


class TestReadTracking:
    @pytest.mark.asyncio
    async def test_mark_read_clears_unread(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        aiko: Member,
        bruno: Member,
        group_id: str,
    ):
        message = await send(api_client, group_id, headers_for(aiko), "Grading on Sunday")

        before = await api_client.get("/api/v1/messages/unread-count", headers=headers_for(bruno))
        marked = await api_client.post(
            f"/api/v1/groups/{group_id}/messages/read", headers=headers_for(bruno)
        )
        repeated = await api_client.post(
            f"/api/v1/groups/{group_id}/messages/read", headers=headers_for(bruno)
        )
        after = await api_client.get("/api/v1/messages/unread-count", headers=headers_for(bruno))
        fetched = await api_client.get(
            f"/api/v1/messages/{message['id']}", headers=headers_for(bruno)
        )

        # created, joined, and the new message
        assert before.json() == {"unread_count": 3}
        assert marked.json() == {"success": True, "marked_count": 3}
        assert repeated.json()["marked_count"] == 3
        assert after.json() == {"unread_count": 0}
        assert set(fetched.json()["data"]["read_by"]) == {str(aiko.id), str(bruno.id)}

    @pytest.mark.asyncio
    async def test_mark_read_up_to_timestamp(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        aiko: Member,
        bruno: Member,
        group_id: str,
    ):
        first = await send(api_client, group_id, headers_for(aiko), "Warm-up at 6")
        await send(api_client, group_id, headers_for(aiko), "Randori at 7")

        response = await api_client.post(
            f"/api/v1/groups/{group_id}/messages/read",
            json={"up_to": first["created_at"]},
            headers=headers_for(bruno),
        )
        unread = await api_client.get("/api/v1/messages/unread-count", headers=headers_for(bruno))

        assert response.json()["marked_count"] == 3
        assert unread.json() == {"unread_count": 1}

    @pytest.mark.asyncio
    async def test_mark_read_with_utc_designator_twice(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        bruno: Member,
        group_id: str,
    ):
        url = f"/api/v1/groups/{group_id}/messages/read"
        first = await api_client.post(url, headers=headers_for(bruno))
        second = await api_client.post(
            url, json={"up_to": "2099-01-01T00:00:00Z"}, headers=headers_for(bruno)
        )
        third = await api_client.post(
            url, json={"up_to": "2099-01-01T09:00:00+09:00"}, headers=headers_for(bruno)
        )
        unread = await api_client.get("/api/v1/messages/unread-count", headers=headers_for(bruno))

        assert [r.status_code for r in (first, second, third)] == [200, 200, 200]
        assert third.json()["marked_count"] == 2
        assert unread.json() == {"unread_count": 0}

    @pytest.mark.asyncio
    async def test_history_before_with_utc_designator(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        aiko: Member,
        group_id: str,
    ):
        await send(api_client, group_id, headers_for(aiko), "Warm-up at 6")

        response = await api_client.get(
            f"/api/v1/groups/{group_id}/messages",
            params={"before": "2099-01-01T00:00:00Z"},
            headers=headers_for(aiko),
        )

        assert response.status_code == 200
        assert response.json()["data"][-1]["content"] == "Warm-up at 6"

    @pytest.mark.asyncio
    async def test_non_member(
        self,
        api_client: AsyncClient,
        headers_for: Headers,
        make_member: MakeMember,
        group_id: str,
    ):
        outsider = await make_member("Dara")

        response = await api_client.post(
            f"/api/v1/groups/{group_id}/messages/read", headers=headers_for(outsider)
        )

        assert response.status_code == 404
        assert response.json()["message"] == "You are not a member of this group"
