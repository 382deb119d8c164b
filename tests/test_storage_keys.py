import pytest
from botocore.exceptions import ClientError

from company_import.integrations import storage
from company_import.integrations.storage import StorageDownloadError, object_key_from_url


@pytest.mark.parametrize(
    "url, expected",
    [
        (
            "https://firebasestorage.googleapis.com/v0/b/app.appspot.com/o/imports%2F1700000000000.json?alt=media&token=abc",
            "imports/1700000000000.json",
        ),
        ("https://s3.eu-north-1.amazonaws.com/company-files/imports/a%20b.csv", "imports/a b.csv"),
        ("https://company-files.s3.amazonaws.com/imports/c.json?X-Amz-Signature=x", "imports/c.json"),
    ],
)
def test_object_key_from_url(url, expected):
    assert object_key_from_url(url, bucket_name="company-files") == expected


def test_object_key_from_empty_url():
    assert object_key_from_url("") is None
    assert object_key_from_url("https://host/", bucket_name="") is None


class _FakeClient:
    def __init__(self, error_code=None):
        self.error_code = error_code
        self.downloads = []

    def download_file(self, bucket, key, destination):
        if self.error_code:
            raise ClientError({"Error": {"Code": self.error_code, "Message": "nope"}}, "HeadObject")
        self.downloads.append((bucket, key, destination))

    def delete_object(self, Bucket, Key):
        raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DeleteObject")


def test_download_missing_object_reports_not_found(monkeypatch, tmp_path):
    monkeypatch.setattr(storage, "get_storage_client", lambda: _FakeClient(error_code="404"))

    with pytest.raises(StorageDownloadError) as exc:
        storage.download_file_to_path("imports/x.json", str(tmp_path / "x.json"))
    assert str(exc.value) == "File not found: imports/x.json"


def test_download_writes_to_destination(monkeypatch, tmp_path):
    client = _FakeClient()
    monkeypatch.setattr(storage, "get_storage_client", lambda: client)
    monkeypatch.setattr(storage.settings, "storage_bucket_name", "company-files")

    destination = str(tmp_path / "y.json")
    assert storage.download_file_to_path("imports/y.json", destination) == destination
    assert client.downloads == [("company-files", "imports/y.json", destination)]


def test_delete_file_never_raises(monkeypatch):
    monkeypatch.setattr(storage, "get_storage_client", lambda: _FakeClient())

    assert storage.delete_file("imports/z.json") is False
