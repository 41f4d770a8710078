import io
import re
from pathlib import Path

import boto3
import pytest
from botocore.stub import Stubber
from starlette.datastructures import Headers, UploadFile

from app.core.config import Settings
from app.core.errors import PayloadTooLarge, UnsupportedMediaType, UploadFailed
from app.models.user import User
from app.schemas.post import PostCreate
from app.services import post_service
from app.services.storage_service import ImageFile, ImageUploader, LocalStorage, S3Storage, unique_filename

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 64


def _uploaded_files(settings) -> list[Path]:
    return [p for p in Path(settings.UPLOAD_DIR).iterdir() if p.is_file()]


async def test_create_post_with_images(client, signup, settings):
    headers, _ = await signup("a@x.com")
    resp = await client.post(
        "/api/posts",
        data={"title": "With pics", "content": "Body"},
        files=[
            ("images", ("cat photo.png", PNG, "image/png")),
            ("images", ("dog.jpg", b"jpegdata", "image/jpeg")),
        ],
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    images = resp.json()["data"]["post"]["images"]
    assert len(images) == 2
    assert all(url.startswith("http://testserver/uploads/") for url in images)
    assert len(_uploaded_files(settings)) == 2

    served = await client.get(images[0])
    assert served.status_code == 200
    assert served.content == PNG


async def test_sixth_image_rejects_whole_request(client, signup, settings):
    headers, _ = await signup("a@x.com")
    files = [("images", (f"{i}.png", PNG, "image/png")) for i in range(6)]
    resp = await client.post("/api/posts", data={"title": "Too many", "content": "Body"}, files=files, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["reason"] == "too_many_files"
    assert _uploaded_files(settings) == []

    listing = await client.get("/api/posts")
    assert listing.json()["data"]["count"] == 0


async def test_disallowed_type_rejects_before_storing(client, signup, settings):
    headers, _ = await signup("a@x.com")
    files = [
        ("images", ("ok.png", PNG, "image/png")),
        ("images", ("notes.txt", b"hello", "text/plain")),
    ]
    resp = await client.post("/api/posts", data={"title": "T", "content": "C"}, files=files, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["reason"] == "unsupported_media_type"
    assert _uploaded_files(settings) == []


async def test_oversize_image_is_413(client, signup, settings):
    headers, _ = await signup("a@x.com")
    big = b"0" * (settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024 + 1)
    files = [("images", ("big.png", big, "image/png"))]
    resp = await client.post("/api/posts", data={"title": "T", "content": "C"}, files=files, headers=headers)
    assert resp.status_code == 413
    assert resp.json()["reason"] == "payload_too_large"
    assert _uploaded_files(settings) == []


async def test_blank_title_with_images_stores_nothing(client, signup, settings):
    headers, _ = await signup("a@x.com")
    files = [("images", ("ok.png", PNG, "image/png"))]
    resp = await client.post("/api/posts", data={"title": " ", "content": "C"}, files=files, headers=headers)
    assert resp.status_code == 400
    assert _uploaded_files(settings) == []


async def test_update_with_new_images_replaces_list(client, signup, settings):
    headers, _ = await signup("a@x.com")
    created = await client.post(
        "/api/posts",
        data={"title": "T", "content": "C"},
        files=[("images", ("one.png", PNG, "image/png"))],
        headers=headers,
    )
    post = created.json()["data"]["post"]

    resp = await client.put(
        f"/api/posts/{post['id']}",
        data={"content": "new body"},
        files=[("images", ("two.gif", b"GIF89a", "image/gif"))],
        headers=headers,
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]["post"]
    assert updated["title"] == "T"
    assert updated["content"] == "new body"
    assert len(updated["images"]) == 1
    assert updated["images"][0] != post["images"][0]
    assert updated["images"][0].endswith(".gif")
    # The replaced image is removed from storage
    assert [p.name for p in _uploaded_files(settings)] == [updated["images"][0].rsplit("/", 1)[-1]]

    unchanged = await client.put(f"/api/posts/{post['id']}", json={"title": "T2"}, headers=headers)
    assert unchanged.json()["data"]["post"]["images"] == updated["images"]


def test_unique_filename_is_sanitised_and_distinct():
    a = unique_filename("my cat!.PNG", "image/png")
    b = unique_filename("my cat!.PNG", "image/png")
    assert a != b
    assert re.fullmatch(r"my-cat-\d{13}-\d{9}\.png", a)
    assert unique_filename("", "image/webp").startswith("image-")
    assert unique_filename("noext", "image/jpeg").endswith(".jpg")


async def test_store_validates_single_buffer(tmp_path):
    uploader = ImageUploader(LocalStorage(str(tmp_path), "http://cdn"), max_size_mb=1)
    url = await uploader.store(PNG, "a.png", "image/png")
    assert url.startswith("http://cdn/uploads/a-")
    with pytest.raises(UnsupportedMediaType):
        await uploader.store(b"%PDF", "a.pdf", "application/pdf")
    with pytest.raises(PayloadTooLarge):
        await uploader.store(b"0" * (1024 * 1024 + 1), "a.png", "image/png")


def _s3_client():
    return boto3.client("s3", region_name="us-east-1", aws_access_key_id="test", aws_secret_access_key="test")


def test_s3_storage_puts_object_and_returns_public_url():
    client = _s3_client()
    storage = S3Storage(client, "blog-media", "blog-posts", "https://cdn.example.com/")
    with Stubber(client) as stubber:
        stubber.add_response("put_object", {})
        url = storage.save("a.png", PNG, "image/png")
        stubber.assert_no_pending_responses()
    assert url == "https://cdn.example.com/blog-posts/a.png"


async def test_s3_transport_error_is_upload_failed():
    client = _s3_client()
    uploader = ImageUploader(S3Storage(client, "blog-media", "blog-posts", "https://cdn.example.com"))
    with Stubber(client) as stubber:
        stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(UploadFailed):
            await uploader.store(PNG, "a.png", "image/png")


def test_s3_storage_from_settings_bounds_timeouts():
    settings = Settings(
        _env_file=None,
        STORAGE_BACKEND="s3",
        S3_ENDPOINT_URL="http://localhost:9000",
        S3_ACCESS_KEY="minio",
        S3_SECRET_KEY="minio-secret",
        UPLOAD_TIMEOUT_SECONDS=3,
    )
    uploader = ImageUploader.from_settings(settings)
    storage = uploader.backend
    assert isinstance(storage, S3Storage)
    assert storage.public_base_url == "http://localhost:9000/blog-media"
    config = storage.s3.meta.config
    assert config.connect_timeout == 3
    assert config.read_timeout == 3
    assert config.retries["total_max_attempts"] == 1


def _image_part(data: bytes, size: int | None = None) -> UploadFile:
    return UploadFile(io.BytesIO(data), size=size, filename="big.png", headers=Headers({"content-type": "image/png"}))


async def test_admit_stops_reading_past_the_limit(tmp_path):
    uploader = ImageUploader(LocalStorage(str(tmp_path), "http://cdn"), max_size_mb=1)
    part = _image_part(b"0" * (3 * 1024 * 1024))
    with pytest.raises(PayloadTooLarge):
        await uploader.admit([part])
    assert part.file.tell() == uploader.max_bytes + 1


async def test_admit_rejects_declared_size_without_reading(tmp_path):
    uploader = ImageUploader(LocalStorage(str(tmp_path), "http://cdn"), max_size_mb=1)
    data = b"0" * (2 * 1024 * 1024)
    part = _image_part(data, size=len(data))
    with pytest.raises(PayloadTooLarge):
        await uploader.admit([part])
    assert part.file.tell() == 0


async def test_delete_post_removes_its_images(client, signup, settings):
    headers, _ = await signup("a@x.com")
    created = await client.post(
        "/api/posts",
        data={"title": "T", "content": "C"},
        files=[("images", ("one.png", PNG, "image/png"))],
        headers=headers,
    )
    assert len(_uploaded_files(settings)) == 1
    resp = await client.delete(f"/api/posts/{created.json()['data']['post']['id']}", headers=headers)
    assert resp.status_code == 200
    assert _uploaded_files(settings) == []


async def test_failed_insert_removes_stored_images(app, db, settings, monkeypatch):
    author = User(email="a@x.com", password_hash="x", name="A")
    db.add(author)
    await db.flush()

    async def broken_flush(*args, **kwargs):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(db, "flush", broken_flush)
    with pytest.raises(RuntimeError):
        await post_service.create_post(
            db,
            app.state.uploader,
            author.id,
            PostCreate(title="T", content="C"),
            [ImageFile(data=PNG, filename="a.png", content_type="image/png")],
        )
    assert _uploaded_files(settings) == []
    await db.rollback()


async def test_discard_leaves_foreign_urls_alone(tmp_path):
    media = tmp_path / "media"
    uploader = ImageUploader(LocalStorage(str(media), "http://cdn"))
    url = await uploader.store(PNG, "a.png", "image/png")
    outside = tmp_path / "keep.png"
    outside.write_bytes(PNG)
    await uploader.discard([url, "https://elsewhere.example.com/a.png", "http://cdn/uploads/../keep.png"])
    assert list(media.iterdir()) == []
    assert outside.exists()


async def test_s3_discard_deletes_owned_objects():
    client = _s3_client()
    uploader = ImageUploader(S3Storage(client, "blog-media", "blog-posts", "https://cdn.example.com"))
    with Stubber(client) as stubber:
        stubber.add_response("delete_object", {}, {"Bucket": "blog-media", "Key": "blog-posts/a.png"})
        await uploader.discard(["https://cdn.example.com/blog-posts/a.png", "https://elsewhere.example.com/b.png"])
        stubber.assert_no_pending_responses()
