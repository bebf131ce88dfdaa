"""
Inkpress Backend — Post Endpoint Tests
=======================================

What:  /api/posts/* and /uploads/* over HTTP, including multipart forms with
       an attached image.
"""

import io
import uuid

import pytest
from fastapi import UploadFile

from inkpress.config import settings
from inkpress.exceptions import ValidationError
from inkpress.routes.posts import _read_image


def _form(category_id, **overrides):
    data = {
        "title": "Async all the way down",
        "content": "Event loops, coroutines and the occasional thread.",
        "category": str(category_id),
        "tags": '["python", "asyncio"]',
        "isPublished": "true",
    }
    data.update(overrides)
    return data


class TestCreatePost:

    @pytest.mark.asyncio
    async def test_create_requires_token(self, test_client, category_factory):
        category = await category_factory()

        response = await test_client.post("/api/posts", data=_form(category.id))

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_with_image_then_serve_it(
        self, test_client, user_factory, category_factory, auth_headers, sample_image_bytes
    ):
        user = await user_factory()
        category = await category_factory()

        response = await test_client.post(
            "/api/posts",
            data=_form(category.id),
            files={"image": ("cover.png", sample_image_bytes, "image/png")},
            headers=auth_headers(user),
        )

        assert response.status_code == 201
        post = response.json()["data"]
        assert post["slug"] == "async-all-the-way-down"
        assert post["tags"] == ["python", "asyncio"]
        assert post["isPublished"] is True
        assert post["author"]["username"] == user.username
        assert post["imageUrl"].startswith("/uploads/")

        image = await test_client.get(post["imageUrl"])
        assert image.status_code == 200
        assert image.content == sample_image_bytes

    @pytest.mark.asyncio
    async def test_create_rejects_non_image_upload(
        self, test_client, user_factory, category_factory, auth_headers
    ):
        user = await user_factory()
        category = await category_factory()

        response = await test_client.post(
            "/api/posts",
            data=_form(category.id),
            files={"image": ("cover.png", b"definitely not a png", "image/png")},
            headers=auth_headers(user),
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "image"

    @pytest.mark.asyncio
    async def test_create_rejects_oversized_upload(
        self, test_client, user_factory, category_factory, auth_headers, monkeypatch
    ):
        monkeypatch.setattr(settings, "max_file_size", 1024)
        user = await user_factory()
        category = await category_factory()

        response = await test_client.post(
            "/api/posts",
            data=_form(category.id),
            files={"image": ("huge.png", b"x" * 4096, "image/png")},
            headers=auth_headers(user),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["errors"][0]["field"] == "image"
        assert "too large" in body["error"]
        assert (await test_client.get("/api/posts")).json()["data"] == []

    @pytest.mark.asyncio
    async def test_oversized_upload_is_refused_unread(self, monkeypatch):
        monkeypatch.setattr(settings, "max_file_size", 1024)
        upload = UploadFile(file=io.BytesIO(b"x" * 4096), size=4096, filename="huge.png")

        with pytest.raises(ValidationError, match="too large"):
            await _read_image(upload)

        assert upload.file.tell() == 0

    @pytest.mark.asyncio
    async def test_create_validation_errors(
        self, test_client, user_factory, category_factory, auth_headers
    ):
        user = await user_factory()
        category = await category_factory()

        response = await test_client.post(
            "/api/posts",
            data=_form(category.id, content="too short"),
            headers=auth_headers(user),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["errors"][0]["field"] == "content"
        assert body["errors"][0]["message"] == "Content must be at least 10 characters long"

    @pytest.mark.asyncio
    async def test_create_with_bad_category_id(self, test_client, user_factory, auth_headers):
        user = await user_factory()

        response = await test_client.post(
            "/api/posts", data=_form("not-a-uuid"), headers=auth_headers(user)
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["message"] == "Please provide a valid category ID"


class TestReadPosts:

    @pytest.mark.asyncio
    async def test_list_only_published(
        self, test_client, user_factory, category_factory, post_factory
    ):
        author = await user_factory()
        category = await category_factory()
        await post_factory(author, category, title="Visible")
        await post_factory(author, category, title="Hidden", is_published=False)

        response = await test_client.get("/api/posts")

        body = response.json()
        assert [p["title"] for p in body["data"]] == ["Visible"]
        pagination = body["pagination"]
        assert pagination["currentPage"] == 1
        assert pagination["totalPages"] == 1
        assert pagination["totalPosts"] == 1
        assert pagination["postsPerPage"] == 10
        assert pagination["hasNextPage"] is False
        assert pagination["hasPrevPage"] is False

    @pytest.mark.asyncio
    async def test_page_beyond_total_pages(
        self, test_client, user_factory, category_factory, post_factory
    ):
        author = await user_factory()
        category = await category_factory()
        for _ in range(3):
            await post_factory(author, category)

        response = await test_client.get("/api/posts", params={"page": 9, "limit": 2})

        body = response.json()
        assert body["data"] == []
        assert body["pagination"]["totalPages"] == 2
        assert body["pagination"]["hasNextPage"] is False

    @pytest.mark.asyncio
    async def test_enormous_page_is_empty_not_an_error(
        self, test_client, user_factory, category_factory, post_factory
    ):
        await post_factory(await user_factory(), await category_factory())

        response = await test_client.get(
            "/api/posts", params={"page": 10**18, "limit": 100}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["data"] == []
        assert body["pagination"]["currentPage"] == 10**18
        assert body["pagination"]["totalPosts"] == 1
        assert body["pagination"]["hasNextPage"] is False

    @pytest.mark.asyncio
    async def test_filter_by_category(
        self, test_client, user_factory, category_factory, post_factory
    ):
        author = await user_factory()
        wanted = await category_factory(name="Wanted")
        await post_factory(author, wanted, title="In wanted")
        await post_factory(author, await category_factory(name="Elsewhere"), title="Elsewhere")

        response = await test_client.get("/api/posts", params={"category": str(wanted.id)})

        body = response.json()
        assert [p["title"] for p in body["data"]] == ["In wanted"]
        assert body["pagination"]["totalPosts"] == 1

    @pytest.mark.asyncio
    async def test_filter_by_author(
        self, test_client, user_factory, category_factory, post_factory
    ):
        category = await category_factory()
        alice = await user_factory()
        bob = await user_factory()
        await post_factory(alice, category, title="By alice")
        await post_factory(bob, category, title="By bob")

        response = await test_client.get("/api/posts", params={"author": str(bob.id)})

        assert [p["title"] for p in response.json()["data"]] == ["By bob"]

    @pytest.mark.asyncio
    async def test_filter_by_search_text(
        self, test_client, user_factory, category_factory, post_factory
    ):
        author = await user_factory()
        category = await category_factory()
        await post_factory(author, category, title="Tuning PostgreSQL")
        await post_factory(author, category, title="Baking bread")

        response = await test_client.get("/api/posts", params={"search": "postgres"})

        assert [p["title"] for p in response.json()["data"]] == ["Tuning PostgreSQL"]

    @pytest.mark.asyncio
    async def test_filters_combine(
        self, test_client, user_factory, category_factory, post_factory
    ):
        category = await category_factory()
        alice = await user_factory()
        bob = await user_factory()
        await post_factory(alice, category, title="Alice on caching")
        await post_factory(bob, category, title="Bob on caching")
        await post_factory(alice, category, title="Alice on gardens")

        response = await test_client.get(
            "/api/posts",
            params={"author": str(alice.id), "category": str(category.id), "search": "caching"},
        )

        assert [p["title"] for p in response.json()["data"]] == ["Alice on caching"]

    @pytest.mark.asyncio
    async def test_malformed_author_filter(self, test_client):
        response = await test_client.get("/api/posts", params={"author": "nobody"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "author"

    @pytest.mark.asyncio
    async def test_limit_out_of_range(self, test_client):
        response = await test_client.get("/api/posts", params={"limit": 500})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "limit"

    @pytest.mark.asyncio
    async def test_get_by_slug_counts_views(
        self, test_client, user_factory, category_factory, post_factory
    ):
        post = await post_factory(await user_factory(), await category_factory())

        first = await test_client.get(f"/api/posts/{post.slug}")
        second = await test_client.get(f"/api/posts/{post.id}")

        assert first.json()["data"]["viewCount"] == 1
        assert second.json()["data"]["viewCount"] == 2

    @pytest.mark.asyncio
    async def test_get_missing_post(self, test_client):
        response = await test_client.get(f"/api/posts/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "Post not found"

    @pytest.mark.asyncio
    async def test_search_matches_tag_only(
        self, test_client, user_factory, category_factory, post_factory
    ):
        author = await user_factory()
        category = await category_factory()
        await post_factory(author, category, title="Ordinary", tags=["rustlang"])
        await post_factory(author, category, title="Other")

        response = await test_client.get("/api/posts/search", params={"q": "RustLang"})

        body = response.json()
        assert response.status_code == 200
        assert [p["title"] for p in body["data"]] == ["Ordinary"]
        assert body["pagination"]["query"] == "RustLang"

    @pytest.mark.asyncio
    async def test_search_without_query(self, test_client):
        response = await test_client.get("/api/posts/search")

        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "q", "message": "Search query is required"}
        ]

    @pytest.mark.asyncio
    async def test_my_posts_is_not_a_slug(
        self, test_client, user_factory, category_factory, post_factory, auth_headers
    ):
        me = await user_factory()
        await post_factory(me, await category_factory(), is_published=False)

        response = await test_client.get("/api/posts/my-posts", headers=auth_headers(me))

        assert response.status_code == 200
        assert response.json()["pagination"]["totalPosts"] == 1


class TestModifyPosts:

    @pytest.mark.asyncio
    async def test_stranger_gets_403(
        self, test_client, user_factory, category_factory, post_factory, auth_headers
    ):
        post = await post_factory(await user_factory(), await category_factory())
        stranger = await user_factory()

        update = await test_client.put(
            f"/api/posts/{post.id}", data={"title": "Hijacked"}, headers=auth_headers(stranger)
        )
        delete = await test_client.delete(f"/api/posts/{post.id}", headers=auth_headers(stranger))

        assert update.status_code == 403
        assert update.json()["error"] == "Not authorized to update this post"
        assert delete.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_may_delete_any_post(
        self, test_client, user_factory, category_factory, post_factory, auth_headers
    ):
        post = await post_factory(await user_factory(), await category_factory())
        admin = await user_factory(role="admin")

        response = await test_client.delete(f"/api/posts/{post.id}", headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Post deleted successfully"}
        assert (await test_client.get(f"/api/posts/{post.id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_author_replaces_image(
        self, test_client, user_factory, category_factory, auth_headers, sample_image_bytes
    ):
        user = await user_factory()
        category = await category_factory()
        created = await test_client.post(
            "/api/posts",
            data=_form(category.id),
            files={"image": ("one.png", sample_image_bytes, "image/png")},
            headers=auth_headers(user),
        )
        old = created.json()["data"]

        updated = await test_client.put(
            f"/api/posts/{old['id']}",
            data={"excerpt": "Now with a summary"},
            files={"image": ("two.png", sample_image_bytes, "image/png")},
            headers=auth_headers(user),
        )

        new = updated.json()["data"]
        assert updated.status_code == 200
        assert new["excerpt"] == "Now with a summary"
        assert new["title"] == old["title"]
        assert new["imageUrl"] != old["imageUrl"]
        assert (await test_client.get(old["imageUrl"])).status_code == 404
        assert (await test_client.get(new["imageUrl"])).status_code == 200

    @pytest.mark.asyncio
    async def test_invalid_post_id_is_400(self, test_client, user_factory, auth_headers):
        user = await user_factory()

        response = await test_client.delete("/api/posts/not-a-uuid", headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "post_id"

    @pytest.mark.asyncio
    async def test_comment_flow(
        self, test_client, user_factory, category_factory, post_factory, auth_headers
    ):
        post = await post_factory(await user_factory(), await category_factory())
        reader = await user_factory()

        response = await test_client.post(
            f"/api/posts/{post.id}/comments",
            json={"content": "Great read"},
            headers=auth_headers(reader),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["commentCount"] == 1
        assert data["comments"][0]["user"]["username"] == reader.username

    @pytest.mark.asyncio
    async def test_empty_comment_rejected(
        self, test_client, user_factory, category_factory, post_factory, auth_headers
    ):
        post = await post_factory(await user_factory(), await category_factory())

        response = await test_client.post(
            f"/api/posts/{post.id}/comments",
            json={"content": "   "},
            headers=auth_headers(await user_factory()),
        )

        assert response.status_code == 400


class TestUploadsRoute:

    @pytest.mark.asyncio
    async def test_missing_upload_is_404(self, test_client):
        response = await test_client.get("/uploads/2020/01/01/nothing.png")
        assert response.status_code == 404
