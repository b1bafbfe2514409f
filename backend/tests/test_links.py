"""Tests for the shared links library endpoints and service."""
import pytest

from aailar.config import LinkSettings
from aailar.links.service import InvalidLinkError, LinkLibraryService
from conftest import LINK_PASSWORD, join

LINK = {
    "title": "Linear algebra lectures",
    "description": "Full MIT course videos",
    "url": "https://ocw.mit.edu/courses/18-06",
}


def share(client, password=LINK_PASSWORD, **fields):
    return client.post("/api/links/upload", json={**LINK, "password": password, **fields})


def remove(client, link_id, password=LINK_PASSWORD):
    return client.request("DELETE", f"/api/links/{link_id}", json={"password": password})


@pytest.fixture
def service(tmp_path):
    svc = LinkLibraryService(LinkSettings(db_path=str(tmp_path / "links.duckdb")))
    yield svc
    svc.close()


class TestLinkService:
    def test_add_trims_and_lists_newest_first(self, service):
        first = service.add_link("  First  ", " one ", " https://example.org/a ", "alice")
        second = service.add_link("Second", "two", "https://example.org/b")

        assert first.title == "First"
        assert first.description == "one"
        assert first.url == "https://example.org/a"
        assert first.uploader_name == "alice"
        assert second.uploader_name == "Anonymous"
        assert [item.id for item in service.list_links()] == [second.id, first.id]

    @pytest.mark.parametrize("title, description, url", [
        ("", "d", "https://example.org"),
        ("t", "   ", "https://example.org"),
        ("t", "d", ""),
        ("t", "d", "not a url"),
        ("t", "d", "javascript:alert(1)"),
        ("t" * 201, "d", "https://example.org"),
        ("t", "d" * 1001, "https://example.org"),
        ("t", "d", "https://example.org/" + "p" * 500),
    ])
    def test_rejects_invalid_links(self, service, title, description, url):
        with pytest.raises(InvalidLinkError):
            service.add_link(title, description, url)
        assert service.list_links() == []

    def test_delete(self, service):
        link = service.add_link("t", "d", "https://example.org")

        assert service.delete_link(link.id).title == "t"
        assert service.get_link(link.id) is None
        assert service.delete_link(link.id) is None


class TestLinkEndpoints:
    def test_upload_requires_password(self, api_client):
        assert share(api_client, password="wrong").status_code == 403
        assert share(api_client, password=None).status_code == 403
        assert api_client.get("/api/links").json() == []

    def test_upload_validates_fields(self, api_client):
        assert share(api_client, url="ftp//broken").status_code == 400
        assert share(api_client, title="").status_code == 400
        assert api_client.get("/api/links").json() == []

    def test_upload_list_and_delete(self, api_client):
        response = share(api_client, uploaderName="alice")
        assert response.status_code == 200
        link = response.json()
        assert link["title"] == LINK["title"]
        assert link["uploader_name"] == "alice"

        assert [item["id"] for item in api_client.get("/api/links").json()] == [link["id"]]

        assert remove(api_client, link["id"], password="bad").status_code == 403
        assert remove(api_client, link["id"]).status_code == 200
        assert api_client.get("/api/links").json() == []
        assert remove(api_client, link["id"]).status_code == 404

    def test_link_events_reach_members(self, api_client):
        with api_client.websocket_connect("/ws/chat") as ws:
            join(ws, "alice")

            link = share(api_client, uploaderName="alice").json()
            uploaded = ws.receive_json()
            assert uploaded == {
                "type": "link-uploaded",
                "id": link["id"],
                "title": LINK["title"],
                "description": LINK["description"],
                "url": LINK["url"],
                "uploadedAt": link["uploaded_at"],
                "uploaderName": "alice",
            }

            remove(api_client, link["id"])
            assert ws.receive_json() == {
                "type": "link-deleted",
                "linkId": link["id"],
                "linkTitle": LINK["title"],
            }
