"""日记接口测试"""

import base64
from urllib.parse import urlsplit

from fastapi.testclient import TestClient

from main import app
from src.services.diary_service import DiaryService, get_diary_service
from src.services.media_process_service import MediaProcessService
from src.utils.errors import MediaReadError


def create_entry(client, title="Trip", content="Great day", files=None):
    response = client.post("/api/entries", data={"title": title, "content": content}, files=files or [])
    assert response.status_code == 201
    return response.json()


class TestApp:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "code": 0}


class TestEntries:
    def test_create_list_get(self, client):
        created = create_entry(client)

        assert created["title"] == "Trip"
        assert created["imageUrls"] == []
        assert created["audioUrl"] is None
        assert created["date"].endswith("Z")

        listed = client.get("/api/entries").json()
        assert listed == [created]
        assert client.get(f"/api/entries/{created['id']}").json() == created

    def test_create_with_media(self, client, jpeg_bytes):
        files = [
            ("images", ("photo.jpg", jpeg_bytes, "image/jpeg")),
            ("images", ("second.png", b"\x89PNG", "image/png")),
            ("audio", ("recording.webm", b"\x1aE\xdf\xa3", "audio/webm")),
        ]
        created = create_entry(client, files=files)

        first, second = created["imageUrls"]
        assert first == "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes).decode()
        assert second.startswith("data:image/png;base64,")
        assert created["audioUrl"].startswith("data:audio/webm;base64,")

    def test_blank_title_rejected(self, client):
        response = client.post("/api/entries", data={"title": "   ", "content": "text"})
        assert response.status_code == 422
        assert client.get("/api/entries").json() == []

    def test_blank_content_rejected(self, client):
        response = client.post("/api/entries", data={"title": "Title", "content": ""})
        assert response.status_code == 422

    def test_get_missing(self, client):
        assert client.get("/api/entries/missing").status_code == 404

    def test_replace(self, client):
        created = create_entry(client)
        response = client.put(
            f"/api/entries/{created['id']}",
            json={"title": "Edited", "content": "New", "imageUrls": ["https://example.com/a.png"]},
        )

        body = response.json()
        assert body["updated"] is True
        stored = client.get(f"/api/entries/{created['id']}").json()
        assert stored == body["entry"]
        assert stored["title"] == "Edited"
        assert stored["imageUrls"] == ["https://example.com/a.png"]

    def test_replace_missing_is_noop(self, client):
        created = create_entry(client)
        response = client.put("/api/entries/missing", json={"title": "X", "content": "Y"})

        assert response.status_code == 200
        assert response.json()["updated"] is False
        assert client.get("/api/entries").json() == [created]

    def test_replace_blank_title_rejected(self, client):
        created = create_entry(client)
        response = client.put(f"/api/entries/{created['id']}", json={"title": "", "content": "Y"})
        assert response.status_code == 422

    def test_delete_twice(self, client):
        first = create_entry(client, title="A")
        second = create_entry(client, title="B")

        assert client.delete(f"/api/entries/{first['id']}").status_code == 200
        assert client.delete(f"/api/entries/{first['id']}").status_code == 200
        assert client.get("/api/entries").json() == [second]


class TestSharing:
    def test_get_entry_by_id(self, client):
        created = create_entry(client)
        body = client.get("/api/getEntry", params={"id": created["id"]}).json()
        assert body == {
            "title": "Trip",
            "content": "Great day",
            "date": created["date"],
            "imageUrls": [],
            "audioUrl": None,
        }

    def test_get_entry_without_id(self, client):
        assert client.get("/api/getEntry").status_code == 400

    def test_get_entry_unknown_id(self, client):
        assert client.get("/api/getEntry", params={"id": "missing"}).status_code == 404

    def test_share_links_round_trip(self, client):
        files = [
            ("images", ("1.png", b"one", "image/png")),
            ("images", ("2.png", b"two", "image/png")),
            ("audio", ("recording.webm", b"clip", "audio/webm")),
        ]
        created = create_entry(client, files=files)

        links = client.get(f"/api/entries/{created['id']}/share").json()
        assert links["byId"].endswith(f"/share/view/{created['id']}")

        token = links["byData"].split("data=", 1)[1]
        view = client.get(f"/api/share/view?data={token}").json()
        assert view["imageUrls"] == created["imageUrls"]
        assert view["audioUrl"] == created["audioUrl"]
        assert view["title"] == created["title"]

    def test_share_missing_entry(self, client):
        assert client.get("/api/entries/missing/share").status_code == 404

    def test_view_without_data(self, client):
        assert client.get("/api/share/view").status_code == 400

    def test_view_corrupted_token(self, client):
        response = client.get("/api/share/view", params={"data": "bm90IGpzb24="})
        assert response.status_code == 400
        assert "invalid or corrupted" in response.json()["detail"]


class TestFailures:
    def test_storage_failure_returns_500(self, failing_client):
        response = failing_client.get("/api/entries")
        assert response.status_code == 500

    def test_storage_failure_on_create(self, failing_client):
        response = failing_client.post("/api/entries", data={"title": "T", "content": "C"})
        assert response.status_code == 500


class TestShareLinkPaths:
    def test_data_link_opens(self, client):
        files = [
            ("images", ("1.png", b"one", "image/png")),
            ("images", ("2.png", b"two", "image/png")),
        ]
        created = create_entry(client, files=files)
        links = client.get(f"/api/entries/{created['id']}/share").json()

        url = urlsplit(links["byData"])
        response = client.get(f"{url.path}?{url.query}")

        assert response.status_code == 200
        assert response.json()["imageUrls"] == created["imageUrls"]
        assert response.json()["title"] == created["title"]

    def test_id_link_opens(self, client):
        created = create_entry(client)
        links = client.get(f"/api/entries/{created['id']}/share").json()

        response = client.get(urlsplit(links["byId"]).path)

        assert response.status_code == 200
        assert response.json() == {
            "title": created["title"],
            "content": created["content"],
            "date": created["date"],
            "imageUrls": [],
            "audioUrl": None,
        }

    def test_id_link_for_deleted_entry(self, client):
        created = create_entry(client)
        links = client.get(f"/api/entries/{created['id']}/share").json()
        client.delete(f"/api/entries/{created['id']}")

        assert client.get(urlsplit(links["byId"]).path).status_code == 404

    def test_corrupted_data_link(self, client):
        response = client.get("/share/view", params={"data": "bm90IGpzb24="})
        assert response.status_code == 400
        assert "invalid or corrupted" in response.json()["detail"]

    def test_data_link_without_data(self, client):
        assert client.get("/share/view").status_code == 400


class UnreadableMediaService(MediaProcessService):
    async def encode(self, file):
        raise MediaReadError(f"无法读取文件 {file.filename}")


class TestEditWithMedia:
    def test_new_images_appended_after_kept(self, client):
        created = create_entry(client, files=[
            ("images", ("1.png", b"one", "image/png")),
            ("images", ("2.png", b"two", "image/png")),
        ])
        kept = created["imageUrls"][1]

        response = client.post(
            f"/api/entries/{created['id']}/edit",
            data={"title": "Edited", "content": "New", "imageUrls": [kept]},
            files=[
                ("images", ("3.jpg", b"three", "image/jpeg")),
                ("images", ("4.gif", b"four", "image/gif")),
                ("audio", ("recording.webm", b"clip", "audio/webm")),
            ],
        )

        assert response.status_code == 200
        body = response.json()
        assert body["updated"] is True
        stored = client.get(f"/api/entries/{created['id']}").json()
        assert stored == body["entry"]
        assert stored["title"] == "Edited"
        assert stored["imageUrls"] == [
            kept,
            "data:image/jpeg;base64," + base64.b64encode(b"three").decode(),
            "data:image/gif;base64," + base64.b64encode(b"four").decode(),
        ]
        assert stored["audioUrl"] == "data:audio/webm;base64," + base64.b64encode(b"clip").decode()

    def test_kept_audio_without_new_recording(self, client):
        created = create_entry(client, files=[("audio", ("recording.webm", b"clip", "audio/webm"))])

        client.post(
            f"/api/entries/{created['id']}/edit",
            data={"title": "T", "content": "C", "audioUrl": created["audioUrl"]},
        )

        assert client.get(f"/api/entries/{created['id']}").json()["audioUrl"] == created["audioUrl"]

    def test_blank_title_rejected(self, client):
        created = create_entry(client)
        response = client.post(f"/api/entries/{created['id']}/edit", data={"title": "", "content": "C"})
        assert response.status_code == 422
        assert client.get(f"/api/entries/{created['id']}").json() == created

    def test_missing_entry_is_noop(self, client):
        created = create_entry(client)
        response = client.post("/api/entries/missing/edit", data={"title": "T", "content": "C"})

        assert response.status_code == 200
        assert response.json()["updated"] is False
        assert client.get("/api/entries").json() == [created]

    def test_unreadable_image_aborts_edit(self, storage):
        service = DiaryService(storage, media_service=UnreadableMediaService())
        app.dependency_overrides[get_diary_service] = lambda: service
        try:
            with TestClient(app) as test_client:
                created = create_entry(test_client)
                response = test_client.post(
                    f"/api/entries/{created['id']}/edit",
                    data={"title": "Edited", "content": "New"},
                    files=[("images", ("1.png", b"one", "image/png"))],
                )

                assert response.status_code == 400
                assert test_client.get(f"/api/entries/{created['id']}").json() == created
        finally:
            app.dependency_overrides.clear()
