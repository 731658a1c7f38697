# =============================================================================
# tests/test_upload_coordinator.py - Client Upload Coordinator tests
# =============================================================================

from unittest.mock import MagicMock

import pytest
import requests

from core.exceptions import LimitExceededError, UploadFailedError, UploadValidationError
from infrastructure.image_api_client import ImageApiClient
from services.upload_coordinator import Notification, UploadCoordinator


class FakeApiClient:
    """Records batches and answers with sequential references."""

    def __init__(self, fail=False):
        self.fail = fail
        self.batches = []
        self.during_upload = None

    def upload(self, files):
        self.batches.append([f.filename for f in files])
        if self.during_upload:
            self.during_upload()
        if self.fail:
            raise UploadFailedError("server responded 500: Failed to upload images")
        start = sum(len(b) for b in self.batches[:-1])
        return [f"/api/images/img-{start + i}" for i in range(len(files))]


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def api():
    return FakeApiClient()


@pytest.fixture
def coordinator(api, notifications):
    return UploadCoordinator(api, max_count=3, max_file_size=1024, notify=notifications.append)


class TestSelectFiles:
    """Client-side validation before any network call."""

    def test_over_limit_rejects_whole_batch(self, coordinator, api, notifications, make_item):
        files = [make_item(f"{i}.png", b"x") for i in range(4)]

        with pytest.raises(LimitExceededError):
            coordinator.select_files(files)

        assert api.batches == []
        assert coordinator.references == ()
        assert isinstance(notifications[-1], Notification)
        assert notifications[-1].variant == "destructive"
        assert "3" in notifications[-1].description

    def test_limit_counts_existing_references(self, api, notifications, make_item):
        coordinator = UploadCoordinator(api, max_count=3, notify=notifications.append,
                                        references=["/api/images/old-1", "/api/images/old-2"])

        with pytest.raises(LimitExceededError):
            coordinator.select_files([make_item("a.png", b"x"), make_item("b.png", b"x")])

        assert api.batches == []

    def test_non_image_excluded_siblings_kept(self, coordinator, api, notifications, make_item):
        result = coordinator.select_files([
            make_item("notes.txt", b"x", "text/plain"),
            make_item("a.png", b"x", "image/png"),
        ])

        assert [f.filename for f in result.accepted] == ["a.png"]
        assert [r.filename for r in result.rejected] == ["notes.txt"]
        assert api.batches == [["a.png"]]
        assert any("notes.txt" in n.description for n in notifications)

    def test_oversize_excluded_siblings_kept(self, coordinator, api, make_item):
        result = coordinator.select_files([
            make_item("huge.png", b"x" * 2048),
            make_item("ok.png", b"x" * 10),
        ])

        assert [f.filename for f in result.accepted] == ["ok.png"]
        assert "huge.png" in result.rejected[0].reason
        assert api.batches == [["ok.png"]]

    def test_all_rejected_makes_no_request(self, coordinator, api, make_item):
        result = coordinator.select_files([make_item("notes.txt", b"x", "text/plain")])

        assert result.accepted == []
        assert api.batches == []

    def test_blocked_while_uploading(self, coordinator, api, make_item):
        errors = []

        def reenter():
            assert coordinator.is_uploading is True
            try:
                coordinator.select_files([make_item("b.png", b"x")])
            except UploadValidationError as e:
                errors.append(e)

        api.during_upload = reenter
        coordinator.select_files([make_item("a.png", b"x")])

        assert len(errors) == 1
        assert coordinator.is_uploading is False
        assert api.batches == [["a.png"]]


class TestSubmitBatch:
    """State reconciliation after the network call."""

    def test_appends_in_order(self, coordinator, make_item):
        coordinator.select_files([make_item("a.png", b"x")])
        coordinator.select_files([make_item("b.png", b"x"), make_item("c.png", b"x")])

        assert coordinator.references == ("/api/images/img-0", "/api/images/img-1", "/api/images/img-2")

    def test_failure_leaves_state_unchanged(self, notifications, make_item):
        api = FakeApiClient()
        coordinator = UploadCoordinator(api, max_count=8, notify=notifications.append)
        coordinator.select_files([make_item("a.png", b"x")])
        api.fail = True

        result = coordinator.select_files([make_item("b.png", b"x")])

        assert result.references == []
        assert coordinator.references == ("/api/images/img-0",)
        assert coordinator.is_uploading is False
        assert notifications[-1].title == "Upload error"

    def test_on_change_called(self, api, make_item):
        changes = []
        coordinator = UploadCoordinator(api, on_change=changes.append, notify=lambda n: None)

        coordinator.select_files([make_item("a.png", b"x")])

        assert changes == [["/api/images/img-0"]]


class TestRemoveAt:
    def test_removes_by_position(self, coordinator, make_item):
        coordinator.select_files([make_item(f"{i}.png", b"x") for i in range(3)])

        removed = coordinator.remove_at(1)

        assert removed == "/api/images/img-1"
        assert coordinator.references == ("/api/images/img-0", "/api/images/img-2")

    def test_out_of_range(self, coordinator):
        with pytest.raises(IndexError):
            coordinator.remove_at(0)


class TestImageApiClient:
    """Multipart transport, with the requests session mocked."""

    def test_posts_images_field(self, make_item):
        session = MagicMock()
        session.post.return_value.ok = True
        session.post.return_value.json.return_value = {"success": True, "imageUrls": ["/api/images/a"]}
        client = ImageApiClient("http://localhost:8000/", session=session)

        references = client.upload([make_item("a.png", b"data")])

        assert references == ["/api/images/a"]
        url = session.post.call_args.args[0]
        files = session.post.call_args.kwargs["files"]
        assert url == "http://localhost:8000/api/images/upload-simple"
        assert files == [("images", ("a.png", b"data", "image/png"))]

    def test_error_response(self, make_item):
        session = MagicMock()
        session.post.return_value.ok = False
        session.post.return_value.status_code = 500
        session.post.return_value.json.return_value = {"error": "Failed to upload images", "details": "bad.png"}
        client = ImageApiClient("http://localhost:8000", session=session)

        with pytest.raises(UploadFailedError) as exc_info:
            client.upload([make_item("bad.png", b"data")])

        assert "bad.png" in exc_info.value.message

    def test_success_without_json_body(self, make_item):
        session = MagicMock()
        session.post.return_value.ok = True
        session.post.return_value.text = "<html>gateway</html>"
        session.post.return_value.json.side_effect = ValueError("no json")
        client = ImageApiClient("http://localhost:8000", session=session)

        with pytest.raises(UploadFailedError) as exc_info:
            client.upload([make_item("a.png", b"data")])

        assert "invalid response" in exc_info.value.message

    def test_success_without_url_list(self, make_item):
        session = MagicMock()
        session.post.return_value.ok = True
        session.post.return_value.json.return_value = {"success": True, "imageUrls": "nope"}
        client = ImageApiClient("http://localhost:8000", session=session)

        with pytest.raises(UploadFailedError):
            client.upload([make_item("a.png", b"data")])

    def test_error_response_with_non_dict_body(self, make_item):
        session = MagicMock()
        session.post.return_value.ok = False
        session.post.return_value.status_code = 502
        session.post.return_value.text = "[1, 2]"
        session.post.return_value.json.return_value = [1, 2]
        client = ImageApiClient("http://localhost:8000", session=session)

        with pytest.raises(UploadFailedError) as exc_info:
            client.upload([make_item("a.png", b"data")])

        assert "502" in exc_info.value.message

    def test_malformed_response_notifies_through_coordinator(self, notifications, make_item):
        session = MagicMock()
        session.post.return_value.ok = True
        session.post.return_value.text = ""
        session.post.return_value.json.side_effect = ValueError("no json")
        coordinator = UploadCoordinator(ImageApiClient("http://localhost:8000", session=session),
                                        notify=notifications.append)

        result = coordinator.select_files([make_item("a.png", b"x")])

        assert result.references == []
        assert coordinator.references == ()
        assert coordinator.is_uploading is False
        assert notifications[-1].title == "Upload error"

    def test_connection_error(self, make_item):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.ConnectionError()
        client = ImageApiClient("http://localhost:8000", session=session)

        with pytest.raises(UploadFailedError):
            client.upload([make_item("a.png", b"data")])
