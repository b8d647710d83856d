import io
from dataclasses import replace

import pytest

from core.settings import get_settings
from providers import factory
from providers.impl import storage_minio
from providers.impl.storage_local_files import LocalFilesStorageProvider
from providers.impl.storage_minio import MinioStorageProvider
from providers.impl.storage_s3 import S3StorageProvider
from providers.storage import StorageProvider


# ---------------------------------------------------------------------
# Local files
# ---------------------------------------------------------------------

def _files(base):
    return sorted(str(f.relative_to(base)).replace("\\", "/") for f in base.rglob("*") if f.is_file())


def test_local_put_stream_put_object_delete(tmp_path):
    p = LocalFilesStorageProvider(str(tmp_path))
    assert isinstance(p, StorageProvider)

    p.put_stream("2025/06/a.wav", io.BytesIO(b"abc"), 3, "audio/wav")
    p.put_object("2025/07/b.wav", b"defg")

    assert (tmp_path / "2025" / "06" / "a.wav").read_bytes() == b"abc"
    assert (tmp_path / "2025" / "07" / "b.wav").read_bytes() == b"defg"
    assert _files(tmp_path) == ["2025/06/a.wav", "2025/07/b.wav"]

    p.delete_object("2025/06/a.wav")
    p.delete_object("2025/06/missing.wav")
    assert _files(tmp_path) == ["2025/07/b.wav"]
    p.ping()


def test_local_failed_stream_leaves_nothing(tmp_path):
    class Exploding:
        def read(self, size=-1):
            raise IOError("client went away")

    p = LocalFilesStorageProvider(str(tmp_path))
    with pytest.raises(IOError):
        p.put_stream("2025/06/x.wav", Exploding())

    assert _files(tmp_path) == []


def test_local_keys_cannot_escape_base_dir(tmp_path):
    base = tmp_path / "store"
    p = LocalFilesStorageProvider(str(base))
    p.put_object("../../escape.txt", b"x")

    assert not (tmp_path / "escape.txt").exists()
    assert _files(base) == ["escape.txt"]


# ---------------------------------------------------------------------
# MinIO (fake client)
# ---------------------------------------------------------------------

class FakeMinioClient:
    def __init__(self, bucket_exists=False):
        self.buckets = {"media"} if bucket_exists else set()
        self.puts = []
        self.objects = {}
        self.removed = []

    def bucket_exists(self, bucket_name):
        return bucket_name in self.buckets

    def make_bucket(self, bucket_name):
        self.buckets.add(bucket_name)

    def put_object(self, **kwargs):
        self.puts.append(kwargs)
        data = kwargs["data"]
        length = kwargs["length"]
        self.objects[kwargs["object_name"]] = data.read() if length < 0 else data.read(length)

    def remove_object(self, bucket_name, object_name):
        self.removed.append(object_name)
        self.objects.pop(object_name, None)


def _minio(client):
    return MinioStorageProvider(
        endpoint="minio", bucket="media", access_key="k", secret_key="s", client=client
    )


def test_minio_creates_missing_bucket():
    client = FakeMinioClient(bucket_exists=False)
    _minio(client)
    assert "media" in client.buckets


def test_minio_put_stream_known_and_unknown_length():
    client = FakeMinioClient(bucket_exists=True)
    p = _minio(client)

    p.put_stream("/2025/06/a.wav", io.BytesIO(b"abc"), 3, "audio/wav", {"uploaded-by": "alice", "skip": None})
    p.put_stream("2025/06/b.wav", io.BytesIO(b"defg"))

    first, second = client.puts
    assert first["object_name"] == "2025/06/a.wav"
    assert first["length"] == 3
    assert first["content_type"] == "audio/wav"
    assert first["metadata"] == {"uploaded-by": "alice"}
    assert "part_size" not in first

    assert second["length"] == -1
    assert second["part_size"] == storage_minio.UNKNOWN_LENGTH_PART_SIZE
    assert client.objects["2025/06/b.wav"] == b"defg"


def test_minio_put_object_and_delete():
    client = FakeMinioClient(bucket_exists=True)
    p = _minio(client)
    p.put_object("2025/06/a.wav", b"abc")

    assert client.objects == {"2025/06/a.wav": b"abc"}
    assert client.puts[0]["length"] == 3

    p.delete_object("2025/06/a.wav")
    assert client.removed == ["2025/06/a.wav"]


def test_minio_bucket_check_failure_is_logged_not_raised(caplog):
    class Broken(FakeMinioClient):
        def bucket_exists(self, bucket_name):
            raise ConnectionError("refused")

    with caplog.at_level("ERROR", logger="providers.impl.storage_minio"):
        p = _minio(Broken())

    assert "Bucket check failed" in caplog.text
    # Still unreachable afterwards: the health endpoint is where it shows.
    with pytest.raises(ConnectionError):
        p.ping()


def test_minio_host_includes_port():
    assert storage_minio._host("minio", 9000) == "minio:9000"
    assert storage_minio._host("http://minio:9001/", 9000) == "minio:9001"
    assert storage_minio._host("", 9000) == ""


# ---------------------------------------------------------------------
# boto3 (fake client)
# ---------------------------------------------------------------------

class FakeS3Client:
    def __init__(self):
        self.calls = []
        self.objects = {}

    def put_object(self, **kwargs):
        self.calls.append(("put_object", kwargs))
        self.objects[kwargs["Key"]] = kwargs["Body"]

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        self.calls.append(("upload_fileobj", {"Bucket": bucket, "Key": key, "ExtraArgs": ExtraArgs}))
        self.objects[key] = fileobj.read()

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def head_bucket(self, Bucket):
        return {}


def test_s3_prefix_applied_to_keys():
    client = FakeS3Client()
    p = S3StorageProvider(bucket="media", prefix="uploads", client=client)

    p.put_stream("2025/06/a.wav", io.BytesIO(b"abc"), 3, "audio/wav", {"uploaded-by": "alice"})

    name, call = client.calls[0]
    assert name == "upload_fileobj"
    assert call["Key"] == "uploads/2025/06/a.wav"
    assert call["ExtraArgs"] == {"ContentType": "audio/wav", "Metadata": {"uploaded-by": "alice"}}

    assert client.objects == {"uploads/2025/06/a.wav": b"abc"}

    p.delete_object("2025/06/a.wav")
    assert client.objects == {}
    p.ping()


def test_s3_requires_bucket():
    with pytest.raises(RuntimeError):
        S3StorageProvider(bucket="", client=FakeS3Client())


# ---------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------

def test_build_storage_local(tmp_path):
    s = replace(get_settings().storage, provider="local", local_dir=str(tmp_path))
    assert isinstance(factory.build_storage(s), LocalFilesStorageProvider)


def test_build_storage_minio_uses_settings(monkeypatch):
    seen = {}

    def fake_minio(**kwargs):
        seen.update(kwargs)
        return FakeMinioClient(bucket_exists=True)

    monkeypatch.setattr(storage_minio, "Minio", fake_minio)
    s = replace(
        get_settings().storage,
        provider="minio",
        minio_endpoint="objects",
        minio_port=9100,
        minio_bucket="media",
        minio_use_ssl=True,
    )

    p = factory.build_storage(s)
    assert isinstance(p, MinioStorageProvider)
    assert seen["endpoint"] == "objects:9100"
    assert seen["secure"] is True


def test_get_providers_is_cached(monkeypatch, tmp_path):
    monkeypatch.setenv("STORAGE_MODE", "local")
    monkeypatch.setenv("STORAGE_LOCAL_DIR", str(tmp_path))
    get_settings.cache_clear()
    factory.reset_providers()
    try:
        a = factory.get_providers()
        b = factory.get_providers()
        assert a is b
        assert isinstance(a.storage, LocalFilesStorageProvider)
        assert len(a.registry) == 0
    finally:
        factory.reset_providers()
