import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

from catalog.api.dependencies import get_blob_store
from catalog.config import settings
from catalog.main import app
from catalog.repositories.product_repository import ProductRepository
from conftest import (
    PNG_BYTES,
    RecordingBlobStore,
    create_product,
    parse_timestamp,
    png_upload,
    stored_files,
)


def test_phone_scenario(client):
    r = create_product(client)
    assert r.status_code == 201
    product = r.json()
    assert product["image"] is None
    assert product["category"] == "smartphone"
    assert product["price"] == 150000

    listed = client.get("/api/products").json()
    assert listed == [product]

    r = client.delete(f"/api/products/{product['id']}")
    assert r.status_code == 200
    assert r.json() == {"message": "Product deleted successfully"}

    r = client.get(f"/api/products/{product['id']}")
    assert r.status_code == 404
    assert r.json() == {"error": "Product not found"}


def test_create_assigns_unique_id_and_created_at(client):
    before = datetime.now(timezone.utc)
    first = create_product(client).json()
    second = create_product(client, name="Phone Y").json()

    assert first["id"] and second["id"]
    assert first["id"] != second["id"]
    assert parse_timestamp(first["createdAt"]) >= before.replace(microsecond=0)
    assert set(first) == {"id", "name", "price", "description", "category", "image", "createdAt"}


def test_create_trims_text_and_defaults_category(client):
    r = create_product(client, name="  Laptop  ", description="  Fast  ", category=None, price=" 999.5 ")
    assert r.status_code == 201
    body = r.json()
    assert body["name"] == "Laptop"
    assert body["description"] == "Fast"
    assert body["category"] == "uncategorized"
    assert body["price"] == 999.5


@pytest.mark.parametrize("missing", ["name", "price", "description"])
def test_create_requires_fields(client, blob_store, missing):
    r = create_product(client, image=png_upload(), **{missing: None})
    assert r.status_code == 400
    assert r.json() == {"error": "Name, price, and description are required"}
    assert client.get("/api/products").json() == []
    assert blob_store.stored == []
    assert stored_files() == []


def test_create_rejects_blank_required_field(client):
    r = create_product(client, name="   ")
    assert r.status_code == 400
    assert client.get("/api/products").json() == []


@pytest.mark.parametrize("price", ["abc", "-5", "nan", "inf"])
def test_create_rejects_bad_price(client, price):
    r = create_product(client, price=price)
    assert r.status_code == 400
    assert "Price" in r.json()["error"]
    assert client.get("/api/products").json() == []


def test_create_accepts_zero_price(client):
    r = create_product(client, price="0")
    assert r.status_code == 201
    assert r.json()["price"] == 0


def test_create_with_image_serves_upload(client, blob_store):
    r = create_product(client, image=png_upload())
    assert r.status_code == 201
    image_url = r.json()["image"]
    assert image_url.startswith("/uploads/")
    assert image_url.endswith(".png")
    assert len(blob_store.stored) == 1

    served = client.get(image_url)
    assert served.status_code == 200
    assert served.content == PNG_BYTES


def test_create_rejects_disallowed_extension(client, blob_store):
    r = create_product(client, image=("setup.exe", b"MZ\x90\x00", "application/octet-stream"))
    assert r.status_code == 400
    assert "Image must be one of" in r.json()["error"]
    assert client.get("/api/products").json() == []
    assert stored_files() == []


def test_create_rejects_non_image_content_type(client):
    r = create_product(client, image=("photo.png", b"<html></html>", "text/html"))
    assert r.status_code == 400
    assert client.get("/api/products").json() == []


def test_create_rejects_oversized_image(client, blob_store):
    blob_store.max_bytes = 64
    r = create_product(client, image=png_upload())
    assert r.status_code == 400
    assert "maximum size" in r.json()["error"]
    assert client.get("/api/products").json() == []
    assert stored_files() == []


def test_image_upload_timeout(client, monkeypatch):
    class SlowBlobStore(RecordingBlobStore):
        async def store(self, upload):
            await asyncio.sleep(1)
            return await super().store(upload)

    monkeypatch.setattr(settings, "blob_timeout_seconds", 0.05)
    app.dependency_overrides[get_blob_store] = lambda: SlowBlobStore(settings.upload_dir)

    r = create_product(client, image=png_upload())
    assert r.status_code == 504
    assert r.json() == {"error": "Image upload timed out"}
    assert client.get("/api/products").json() == []


def test_get_product(client):
    created = create_product(client).json()
    r = client.get(f"/api/products/{created['id']}")
    assert r.status_code == 200
    assert r.json() == created


def test_list_reflects_creations_and_deletions(client):
    ids = [create_product(client, name=f"Item {i}").json()["id"] for i in range(5)]
    for product_id in ids[:2]:
        assert client.delete(f"/api/products/{product_id}").status_code == 200
    client.put(f"/api/products/{ids[4]}", data={"price": "10"})

    listed = client.get("/api/products").json()
    assert [p["id"] for p in listed] == ids[2:]
    assert listed[-1]["price"] == 10
    assert listed[-1]["name"] == "Item 4"


def test_update_subset_preserves_other_fields(client):
    created = create_product(client, image=png_upload()).json()
    r = client.put(f"/api/products/{created['id']}", data={"price": "120000"})
    assert r.status_code == 200
    updated = r.json()
    assert updated["price"] == 120000
    for field in ("id", "name", "description", "category", "image", "createdAt"):
        assert updated[field] == created[field]


def test_update_text_fields(client):
    created = create_product(client).json()
    r = client.put(
        f"/api/products/{created['id']}",
        data={"name": " Phone X Pro ", "category": "  "},
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Phone X Pro"
    assert r.json()["category"] == "uncategorized"


@pytest.mark.parametrize("field,value,message", [
    ("price", "abc", "Price must be a non-negative number"),
    ("price", "-1", "Price must be a non-negative number"),
    ("price", "", "Price must be a non-negative number"),
    ("name", "  ", "Name must not be empty"),
    ("name", "", "Name must not be empty"),
    ("description", " ", "Description must not be empty"),
    ("description", "", "Description must not be empty"),
])
def test_update_rejects_invalid_fields(client, field, value, message):
    created = create_product(client).json()
    r = client.put(f"/api/products/{created['id']}", data={field: value})
    assert r.status_code == 400
    assert r.json() == {"error": message}
    assert client.get(f"/api/products/{created['id']}").json() == created


def test_update_empty_category_resets_to_default(client):
    created = create_product(client).json()
    r = client.put(f"/api/products/{created['id']}", data={"category": ""})
    assert r.status_code == 200
    assert r.json()["category"] == "uncategorized"


def test_update_missing_product(client, blob_store):
    r = client.put("/api/products/doesnotexist", data={"price": "1"}, files={"image": png_upload()})
    assert r.status_code == 404
    assert r.json() == {"error": "Product not found"}
    assert blob_store.stored == []


def test_update_replaces_image_and_removes_old_blob(client, blob_store):
    created = create_product(client, image=png_upload("old.png")).json()
    old_key = created["image"].rsplit("/", 1)[-1]

    r = client.put(f"/api/products/{created['id']}", files={"image": png_upload("new.jpg")})
    assert r.status_code == 200
    new_url = r.json()["image"]
    assert new_url != created["image"]
    assert new_url.endswith(".jpg")
    assert blob_store.deleted == [old_key]
    assert stored_files() == [new_url.rsplit("/", 1)[-1]]


def test_delete_with_image_removes_blob(client, blob_store):
    created = create_product(client, image=png_upload()).json()
    assert len(stored_files()) == 1

    r = client.delete(f"/api/products/{created['id']}")
    assert r.status_code == 200
    assert blob_store.deleted == [created["image"].rsplit("/", 1)[-1]]
    assert stored_files() == []


def test_delete_without_image_skips_blob_store(client, blob_store):
    created = create_product(client).json()
    r = client.delete(f"/api/products/{created['id']}")
    assert r.status_code == 200
    assert blob_store.deleted == []


def test_delete_missing_product_leaves_repository_unchanged(client):
    created = create_product(client).json()
    r = client.delete("/api/products/doesnotexist")
    assert r.status_code == 404
    assert r.json() == {"error": "Product not found"}
    assert client.get("/api/products").json() == [created]


def test_delete_succeeds_when_blob_cleanup_fails(client, blob_store):
    created = create_product(client, image=png_upload()).json()
    blob_store.fail_delete = True

    r = client.delete(f"/api/products/{created['id']}")
    assert r.status_code == 200
    assert client.get(f"/api/products/{created['id']}").status_code == 404


def failing(message="database unavailable"):
    async def fail(*args, **kwargs):
        raise SQLAlchemyError(message)
    return staticmethod(fail)


def test_list_repository_failure(client, monkeypatch):
    monkeypatch.setattr(ProductRepository, "list_all", failing())
    r = client.get("/api/products")
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch products"}


def test_create_repository_failure_discards_uploaded_image(client, blob_store, monkeypatch):
    monkeypatch.setattr(ProductRepository, "create", failing())
    r = create_product(client, image=png_upload())
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to add product"}
    assert [blob.key for blob in blob_store.stored] == blob_store.deleted
    assert len(blob_store.deleted) == 1
    assert stored_files() == []


def test_update_repository_failure_keeps_old_image(client, blob_store, monkeypatch):
    created = create_product(client, image=png_upload("old.png")).json()
    monkeypatch.setattr(ProductRepository, "update_by_id", failing())

    r = client.put(f"/api/products/{created['id']}", files={"image": png_upload("new.png")})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to update product"}
    assert blob_store.deleted == [blob_store.stored[-1].key]
    assert stored_files() == [created["image"].rsplit("/", 1)[-1]]


def test_delete_repository_failure(client, monkeypatch):
    created = create_product(client).json()
    monkeypatch.setattr(ProductRepository, "delete_by_id", failing())
    r = client.delete(f"/api/products/{created['id']}")
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to delete product"}


def test_created_at_is_utc(client):
    created = create_product(client).json()
    parsed = datetime.fromisoformat(created["createdAt"].replace("Z", "+00:00"))
    assert parsed.utcoffset() == timedelta(0)
    assert client.get(f"/api/products/{created['id']}").json()["createdAt"] == created["createdAt"]


def test_purchase_link(client, monkeypatch):
    monkeypatch.setattr(settings, "whatsapp_number", "+234 901 513 0233")
    created = create_product(client).json()

    r = client.get(f"/api/products/{created['id']}/purchase-link")
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Hi! I'm interested in the Phone X for ₦150,000. Is it available?"
    assert body["url"].startswith("https://wa.me/2349015130233?text=Hi%21%20I%27m%20interested")


def test_purchase_link_requires_configuration(client):
    created = create_product(client).json()
    r = client.get(f"/api/products/{created['id']}/purchase-link")
    assert r.status_code == 400


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "OK"
    assert parse_timestamp(body["timestamp"])


def test_unmatched_route(client):
    r = client.get("/api/nothing-here")
    assert r.status_code == 404
    assert r.json() == {"error": "Endpoint not found"}
