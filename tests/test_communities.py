"""
Tests for community routes: membership, posts, comments, likes.
"""

import pytest

from conftest import bearer, register, register_token


async def _create_community(client, token, **overrides):
    body = {"name": "Speedrunners", "description": "Going fast", "category": "platformer"}
    body.update(overrides)
    resp = await client.post("/api/communities", json=body, headers=bearer(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


async def _create_post(client, token, community_id, title="Any%", content="New PB"):
    resp = await client.post(
        f"/api/communities/{community_id}/posts",
        json={"title": title, "content": content},
        headers=bearer(token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


async def _comment(client, token, community_id, post_id, content="gg", parent=None):
    body = {"content": content}
    if parent is not None:
        body["parent_comment_id"] = parent
    resp = await client.post(
        f"/api/communities/{community_id}/posts/{post_id}/comments",
        json=body,
        headers=bearer(token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


class TestCommunities:
    @pytest.mark.asyncio
    async def test_create_requires_auth(self, client):
        resp = await client.post("/api/communities", json={"name": "x", "description": "y", "category": "z"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_create_requires_fields(self, client):
        token = await register_token(client)
        resp = await client.post("/api/communities", json={"name": "x"}, headers=bearer(token))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Name, description, and category are required"}

    @pytest.mark.asyncio
    async def test_creator_is_admin_and_flags_follow_identity(self, client):
        token = await register_token(client)
        community_id = await _create_community(client, token)

        anonymous = (await client.get("/api/communities")).json()["communities"]
        assert len(anonymous) == 1
        assert "is_member" not in anonymous[0]

        mine = (await client.get("/api/communities", headers=bearer(token))).json()["communities"]
        assert mine[0]["id"] == community_id
        assert mine[0]["is_member"] is True
        assert mine[0]["role"] == "admin"
        assert mine[0]["member_count"] == 1

    @pytest.mark.asyncio
    async def test_get_single_and_missing(self, client):
        token = await register_token(client)
        community_id = await _create_community(
            client, token, image_url="http://old-host.example/uploads/logo.png"
        )

        resp = await client.get(f"/api/communities/{community_id}")
        assert resp.status_code == 200
        assert resp.json()["community"]["name"] == "Speedrunners"
        assert resp.json()["community"]["image_url"] == "/uploads/logo.png"

        missing = await client.get("/api/communities/9999")
        assert missing.status_code == 404
        assert missing.json() == {"error": "Community not found"}

    @pytest.mark.asyncio
    async def test_join_and_leave(self, client):
        owner = await register_token(client, "owner")
        member = await register_token(client, "member")
        community_id = await _create_community(client, owner)

        joined = await client.post(f"/api/communities/{community_id}/join", headers=bearer(member))
        assert joined.status_code == 200
        again = await client.post(f"/api/communities/{community_id}/join", headers=bearer(member))
        assert again.status_code == 400
        assert again.json() == {"error": "Already a member of this community"}

        community = (await client.get(f"/api/communities/{community_id}", headers=bearer(member))).json()["community"]
        assert community["member_count"] == 2
        assert community["is_member"] is True
        assert community["role"] == "member"

        left = await client.delete(f"/api/communities/{community_id}/join", headers=bearer(member))
        assert left.status_code == 200
        not_member = await client.delete(f"/api/communities/{community_id}/join", headers=bearer(member))
        assert not_member.status_code == 400
        assert not_member.json() == {"error": "Not a member of this community"}

        community = (await client.get(f"/api/communities/{community_id}")).json()["community"]
        assert community["member_count"] == 1

    @pytest.mark.asyncio
    async def test_join_missing_community(self, client):
        token = await register_token(client)
        resp = await client.post("/api/communities/404/join", headers=bearer(token))
        assert resp.status_code == 404


class TestPosts:
    @pytest.mark.asyncio
    async def test_post_author_and_counts(self, client):
        token = (await register(client, "alice", displayName="Alice A.")).json()["accessToken"]
        community_id = await _create_community(client, token)
        await _create_post(client, token, community_id, title="first")
        await _create_post(client, token, community_id, title="second")

        posts = (await client.get(f"/api/communities/{community_id}/posts")).json()["posts"]
        assert [p["title"] for p in posts] == ["second", "first"]
        assert posts[0]["author"] == "Alice A."
        assert posts[0]["is_liked"] is False

        community = (await client.get(f"/api/communities/{community_id}")).json()["community"]
        assert community["post_count"] == 2

    @pytest.mark.asyncio
    async def test_post_requires_title_and_content(self, client):
        token = await register_token(client)
        community_id = await _create_community(client, token)
        resp = await client.post(
            f"/api/communities/{community_id}/posts", json={"title": "t"}, headers=bearer(token)
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Title and content are required"}

    @pytest.mark.asyncio
    async def test_like_and_unlike_post(self, client):
        token = await register_token(client)
        community_id = await _create_community(client, token)
        post_id = await _create_post(client, token, community_id)

        assert (await client.post(f"/api/posts/{post_id}/like", headers=bearer(token))).status_code == 200
        dup = await client.post(f"/api/posts/{post_id}/like", headers=bearer(token))
        assert dup.status_code == 400
        assert dup.json() == {"error": "Already liked this post"}

        posts = (await client.get(f"/api/communities/{community_id}/posts", headers=bearer(token))).json()["posts"]
        assert posts[0]["likes_count"] == 1
        assert posts[0]["is_liked"] is True

        assert (await client.delete(f"/api/posts/{post_id}/like", headers=bearer(token))).status_code == 200
        again = await client.delete(f"/api/posts/{post_id}/like", headers=bearer(token))
        assert again.status_code == 400
        assert again.json() == {"error": "Post not liked"}

        posts = (await client.get(f"/api/communities/{community_id}/posts")).json()["posts"]
        assert posts[0]["likes_count"] == 0

    @pytest.mark.asyncio
    async def test_listing_rewrites_upload_urls_on_every_row(self, client):
        token = await register_token(client)
        community_id = await _create_community(client, token)
        for name in ("a.png", "b.png"):
            resp = await client.post(
                f"/api/communities/{community_id}/posts",
                json={"title": name, "content": "shot", "image_url": f"http://old-host.example/uploads/{name}"},
                headers=bearer(token),
            )
            assert resp.status_code == 201

        posts = (await client.get(f"/api/communities/{community_id}/posts")).json()["posts"]
        assert sorted(p["image_url"] for p in posts) == ["/uploads/a.png", "/uploads/b.png"]


class TestComments:
    @pytest.mark.asyncio
    async def test_pagination_oldest_first(self, client):
        token = await register_token(client)
        community_id = await _create_community(client, token)
        post_id = await _create_post(client, token, community_id)
        for i in range(7):
            await _comment(client, token, community_id, post_id, content=f"c{i}")

        url = f"/api/communities/{community_id}/posts/{post_id}/comments"
        first = (await client.get(url)).json()
        assert [c["content"] for c in first["comments"]] == ["c0", "c1", "c2", "c3", "c4"]
        assert first["hasMore"] is True

        rest = (await client.get(url, params={"offset": 5})).json()
        assert [c["content"] for c in rest["comments"]] == ["c5", "c6"]
        assert rest["hasMore"] is False

        posts = (await client.get(f"/api/communities/{community_id}/posts")).json()["posts"]
        assert posts[0]["comments_count"] == 7

    @pytest.mark.asyncio
    async def test_comment_like_flags(self, client):
        token = await register_token(client)
        community_id = await _create_community(client, token)
        post_id = await _create_post(client, token, community_id)
        comment_id = await _comment(client, token, community_id, post_id)
        base = f"/api/communities/{community_id}/posts/{post_id}/comments"

        assert (await client.post(f"{base}/{comment_id}/like", headers=bearer(token))).status_code == 200
        dup = await client.post(f"{base}/{comment_id}/like", headers=bearer(token))
        assert dup.json() == {"error": "Already liked"}

        mine = (await client.get(base, headers=bearer(token))).json()["comments"][0]
        assert mine["is_liked"] is True
        assert mine["likes_count"] == 1
        anonymous = (await client.get(base)).json()["comments"][0]
        assert anonymous["is_liked"] is False

        assert (await client.delete(f"{base}/{comment_id}/like", headers=bearer(token))).status_code == 200
        again = await client.delete(f"{base}/{comment_id}/like", headers=bearer(token))
        assert again.json() == {"error": "Not liked"}

    @pytest.mark.asyncio
    async def test_reply_to_unknown_parent(self, client):
        token = await register_token(client)
        community_id = await _create_community(client, token)
        post_id = await _create_post(client, token, community_id)
        resp = await client.post(
            f"/api/communities/{community_id}/posts/{post_id}/comments",
            json={"content": "reply", "parent_comment_id": 999},
            headers=bearer(token),
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_only_admins_delete_and_replies_go_too(self, client):
        admin = await register_token(client, "admin")
        member = await register_token(client, "member")
        community_id = await _create_community(client, admin)
        await client.post(f"/api/communities/{community_id}/join", headers=bearer(member))
        post_id = await _create_post(client, member, community_id)

        root = await _comment(client, member, community_id, post_id, "root")
        reply = await _comment(client, admin, community_id, post_id, "reply", parent=root)
        await _comment(client, member, community_id, post_id, "nested", parent=reply)
        await _comment(client, member, community_id, post_id, "other")
        base = f"/api/communities/{community_id}/posts/{post_id}/comments"
        await client.post(f"{base}/{reply}/like", headers=bearer(member))

        forbidden = await client.delete(f"{base}/{root}", headers=bearer(member))
        assert forbidden.status_code == 403
        assert forbidden.json() == {"error": "Only community admins can delete comments"}

        missing = await client.delete(f"{base}/9999", headers=bearer(admin))
        assert missing.status_code == 404

        deleted = await client.delete(f"{base}/{root}", headers=bearer(admin))
        assert deleted.status_code == 200

        remaining = (await client.get(base)).json()["comments"]
        assert [c["content"] for c in remaining] == ["other"]
        posts = (await client.get(f"/api/communities/{community_id}/posts")).json()["posts"]
        assert posts[0]["comments_count"] == 1

    @pytest.mark.asyncio
    async def test_comment_like_requires_matching_post_and_community(self, client):
        token = await register_token(client)
        community_id = await _create_community(client, token)
        other_community = await _create_community(client, token, name="Other")
        post_id = await _create_post(client, token, community_id, title="one")
        other_post = await _create_post(client, token, community_id, title="two")
        comment_id = await _comment(client, token, community_id, post_id)

        wrong_post = await client.post(
            f"/api/communities/{community_id}/posts/{other_post}/comments/{comment_id}/like",
            headers=bearer(token),
        )
        assert wrong_post.status_code == 404
        assert wrong_post.json() == {"error": "Comment not found"}

        wrong_community = await client.post(
            f"/api/communities/{other_community}/posts/{post_id}/comments/{comment_id}/like",
            headers=bearer(token),
        )
        assert wrong_community.status_code == 404

        unlike = await client.delete(
            f"/api/communities/{community_id}/posts/{other_post}/comments/{comment_id}/like",
            headers=bearer(token),
        )
        assert unlike.status_code == 404

        comments = (
            await client.get(f"/api/communities/{community_id}/posts/{post_id}/comments")
        ).json()["comments"]
        assert comments[0]["likes_count"] == 0
