import uuid

import pytest


async def _create_post(client, headers, title="Hi", content="Body"):
    resp = await client.post("/api/posts", json={"title": title, "content": content}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["post"]


async def test_signup_post_and_like_scenario(client, signup):
    author_headers, author = await signup("a@x.com", name="A")
    post = await _create_post(client, author_headers, "Hi", "Body")
    assert post["author"] == {"id": author["id"], "name": "A", "email": "a@x.com"}
    assert post["likesCount"] == 0

    fan_headers, _ = await signup("b@x.com", name="B")
    first = await client.post(f"/api/posts/{post['id']}/like", headers=fan_headers)
    assert first.status_code == 200
    assert first.json()["data"] == {"likesCount": 1, "isLiked": True}

    second = await client.post(f"/api/posts/{post['id']}/like", headers=fan_headers)
    assert second.json()["data"] == {"likesCount": 0, "isLiked": False}


async def test_like_requires_authentication(client, signup):
    headers, _ = await signup("a@x.com")
    post = await _create_post(client, headers)
    resp = await client.post(f"/api/posts/{post['id']}/like")
    assert resp.status_code == 401


async def test_like_missing_post_is_404(client, signup):
    headers, _ = await signup("a@x.com")
    resp = await client.post(f"/api/posts/{uuid.uuid4()}/like", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["reason"] == "not_found"


async def test_create_requires_authentication(client):
    resp = await client.post("/api/posts", json={"title": "Hi", "content": "Body"})
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "", "content": "Body"},
        {"title": "   ", "content": "Body"},
        {"title": "Hi", "content": "  \n "},
        {"content": "Body"},
        {"title": "x" * 101, "content": "Body"},
    ],
)
async def test_create_with_blank_or_invalid_fields_is_400(client, signup, payload):
    headers, _ = await signup("a@x.com")
    resp = await client.post("/api/posts", json=payload, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["reason"] == "validation_error"


async def test_create_with_non_json_body_is_400(client, signup):
    headers, _ = await signup("a@x.com")
    resp = await client.post("/api/posts", content=b"title=Hi", headers={**headers, "Content-Type": "text/plain"})
    assert resp.status_code == 400


async def test_list_is_newest_first_with_author_display_fields(client, signup):
    headers, _ = await signup("a@x.com", name="A")
    first = await _create_post(client, headers, "First")
    second = await _create_post(client, headers, "Second")

    resp = await client.get("/api/posts")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["count"] == 2
    assert [p["id"] for p in data["posts"]] == [second["id"], first["id"]]
    assert set(data["posts"][0]["author"]) == {"id", "name", "email"}


async def test_list_marks_posts_liked_by_viewer(client, signup):
    headers, _ = await signup("a@x.com")
    liked = await _create_post(client, headers, "Liked")
    await _create_post(client, headers, "Not liked")
    await client.post(f"/api/posts/{liked['id']}/like", headers=headers)

    resp = await client.get("/api/posts", headers=headers)
    flags = {p["title"]: p["isLiked"] for p in resp.json()["data"]["posts"]}
    assert flags == {"Liked": True, "Not liked": False}

    anonymous = await client.get("/api/posts")
    assert not any(p["isLiked"] for p in anonymous.json()["data"]["posts"])


async def test_get_post_resolves_liking_users(client, signup):
    headers, _ = await signup("a@x.com", name="A")
    fan_headers, fan = await signup("b@x.com", name="B")
    post = await _create_post(client, headers)
    await client.post(f"/api/posts/{post['id']}/like", headers=fan_headers)

    resp = await client.get(f"/api/posts/{post['id']}", headers=fan_headers)
    assert resp.status_code == 200
    detail = resp.json()["data"]["post"]
    assert detail["likes"] == [{"id": fan["id"], "name": "B", "email": "b@x.com"}]
    assert detail["isLiked"] is True


async def test_get_missing_post_is_404(client):
    resp = await client.get(f"/api/posts/{uuid.uuid4()}")
    assert resp.status_code == 404


async def test_partial_update_keeps_empty_fields(client, signup):
    headers, _ = await signup("a@x.com")
    post = await _create_post(client, headers, "Original title", "Original body")

    resp = await client.put(f"/api/posts/{post['id']}", json={"title": "", "content": "new"}, headers=headers)
    assert resp.status_code == 200
    updated = resp.json()["data"]["post"]
    assert updated["title"] == "Original title"
    assert updated["content"] == "new"

    resp = await client.put(f"/api/posts/{post['id']}", json={"title": "New title"}, headers=headers)
    updated = resp.json()["data"]["post"]
    assert updated["title"] == "New title"
    assert updated["content"] == "new"


async def test_non_owner_cannot_update_or_delete(client, signup):
    owner_headers, _ = await signup("a@x.com")
    other_headers, _ = await signup("b@x.com")
    post = await _create_post(client, owner_headers)

    update = await client.put(f"/api/posts/{post['id']}", json={"title": "Mine now"}, headers=other_headers)
    assert update.status_code == 403
    assert update.json()["reason"] == "forbidden"

    delete = await client.delete(f"/api/posts/{post['id']}", headers=other_headers)
    assert delete.status_code == 403

    still_there = await client.get(f"/api/posts/{post['id']}")
    assert still_there.json()["data"]["post"]["title"] == "Hi"


async def test_owner_can_delete(client, signup):
    headers, _ = await signup("a@x.com")
    post = await _create_post(client, headers)

    resp = await client.delete(f"/api/posts/{post['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    gone = await client.get(f"/api/posts/{post['id']}")
    assert gone.status_code == 404
    again = await client.delete(f"/api/posts/{post['id']}", headers=headers)
    assert again.status_code == 404


async def test_update_missing_post_is_404_before_ownership(client, signup):
    headers, _ = await signup("a@x.com")
    resp = await client.put(f"/api/posts/{uuid.uuid4()}", json={"title": "x"}, headers=headers)
    assert resp.status_code == 404
