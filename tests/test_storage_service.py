from e_estudiantes.services import storage_service


def test_generate_file_path_sanitizes_name():
    path = storage_service.generate_file_path("u1", "shared", "mis apuntes (final)#1.pdf", 1700000000123.4)

    assert path == "shared/u1/1700000000123_mis_apuntes__final__1.pdf"


def test_generate_file_path_defaults_unknown_category_to_personal():
    assert storage_service.generate_file_path("u1", "other", "a.txt", 5).startswith("personal/u1/5_")


def test_file_type_helpers():
    assert storage_service.get_file_extension("Informe.Final.PDF") == "pdf"
    assert storage_service.is_valid_file_type("slides.pptx", storage_service.ALLOWED_NOTE_EXTENSIONS)
    assert not storage_service.is_valid_file_type("virus.exe", storage_service.ALLOWED_NOTE_EXTENSIONS)


def test_format_file_size():
    assert storage_service.format_file_size(0) == "0 Bytes"
    assert storage_service.format_file_size(512) == "512 Bytes"
    assert storage_service.format_file_size(1536) == "1.5 KB"
    assert storage_service.format_file_size(25 * 1024 * 1024) == "25 MB"
    assert storage_service.format_file_size(0.5) == "0.5 Bytes"


def test_upload_and_delete_with_bucket(fake_bucket, upload_bytes):
    blob = storage_service.upload_file(fake_bucket, "personal/u1/1_a.pdf", upload_bytes(b"data"), "application/pdf")

    assert fake_bucket.files["personal/u1/1_a.pdf"] == (b"data", "application/pdf")
    assert blob.public_url.endswith("personal/u1/1_a.pdf")
    assert storage_service.delete_file(fake_bucket, "personal/u1/1_a.pdf") is True
    assert fake_bucket.files == {}
    assert storage_service.delete_file(None, "x") is False


def test_generate_download_url_uses_ttl(fake_bucket):
    url = storage_service.generate_download_url(fake_bucket, "shared/u1/1_a.pdf", 900)

    assert url == "https://signed.example.test/shared/u1/1_a.pdf?ttl=900"


def test_get_file_metadata(fake_bucket, upload_bytes):
    storage_service.upload_file(fake_bucket, "shared/u1/1_a.pdf", upload_bytes(b"12345"), "application/pdf")

    metadata = storage_service.get_file_metadata(fake_bucket, "shared/u1/1_a.pdf")

    assert metadata == {"name": "shared/u1/1_a.pdf", "size": 5, "content_type": "application/pdf", "updated": None}
    assert storage_service.get_file_metadata(fake_bucket, "missing.pdf") is None
