"""
TextStation Backend — File Service Unit Tests
==============================================

What:  Tests for export storage and download path resolution.
Why:   resolve() is the boundary between a URL path and the file system.
How:   Real files under pytest's tmp_path; aiofiles is patched only to
       simulate a failing write.

Test Strategy:
    ✅ Titles become single, safe path components
    ✅ store_export writes under exports/ and overwrites by title
    ✅ resolve() rejects traversal and missing files alike
    ✅ OS errors become FileStorageError
    ✅ Download tokens are bound to one path and expire
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import jwt
import pytest

from textstation.exceptions import FileStorageError, NotFoundError, PermissionDeniedError
from textstation.services.file_service import (
    DOWNLOAD_TOKEN_ALGORITHM,
    MAX_FILENAME_BYTES,
    FileService,
    safe_filename,
)


class TestSafeFilename:

    def test_japanese_title_kept(self):
        assert safe_filename("週報 2024年5月.pdf") == "週報 2024年5月.pdf"

    def test_path_separators_replaced(self):
        assert safe_filename("../../etc/passwd") == "_.._etc_passwd"
        assert safe_filename("a\\b:c.pdf") == "a_b_c.pdf"

    def test_leading_dots_removed(self):
        assert safe_filename("..hidden.pdf") == "hidden.pdf"

    def test_control_characters_replaced(self):
        assert safe_filename("a\nb\x00c") == "a_b_c"

    def test_empty_result_gets_default(self):
        assert safe_filename("...") == "export"
        assert safe_filename("") == "export"

    def test_length_capped_in_bytes(self):
        name = safe_filename("あ" * 500)
        assert len(name.encode("utf-8")) <= MAX_FILENAME_BYTES
        assert name == "あ" * 66

    def test_long_japanese_title_keeps_suffix(self):
        name = safe_filename("報" * 100 + ".pdf")
        assert name.endswith(".pdf")
        assert len(name.encode("utf-8")) <= MAX_FILENAME_BYTES
        assert name == "報" * 65 + ".pdf"

    def test_long_ascii_title_keeps_suffix(self):
        name = safe_filename("a" * 200 + ".pdf")
        assert name == "a" * 196 + ".pdf"

    def test_cut_never_splits_a_character(self):
        # The stem budget is 196 bytes; 195 ASCII bytes leave one, too few for "報"
        name = safe_filename("a" * 195 + "報報.pdf")
        assert name == "a" * 195 + ".pdf"


class TestStoreExport:

    @pytest.mark.asyncio
    async def test_writes_under_exports(self, temp_storage):
        service = FileService(storage_root=temp_storage)

        abs_path, rel_path = await service.store_export(b"%PDF-1.4 test", "報告書.pdf")

        assert rel_path == "exports/報告書.pdf"
        assert Path(abs_path).read_bytes() == b"%PDF-1.4 test"
        assert Path(abs_path).parent == Path(temp_storage).resolve() / "exports"

    @pytest.mark.asyncio
    async def test_same_title_overwrites(self, temp_storage):
        service = FileService(storage_root=temp_storage)

        await service.store_export(b"first", "同じ.pdf")
        abs_path, _ = await service.store_export(b"second", "同じ.pdf")

        assert Path(abs_path).read_bytes() == b"second"

    @pytest.mark.asyncio
    async def test_unsafe_title_stays_inside_exports(self, temp_storage):
        service = FileService(storage_root=temp_storage)

        abs_path, rel_path = await service.store_export(b"x", "../escape.pdf")

        assert rel_path.startswith("exports/")
        assert Path(abs_path).is_relative_to(Path(temp_storage).resolve() / "exports")

    @pytest.mark.asyncio
    async def test_long_japanese_title_is_writable(self, temp_storage):
        service = FileService(storage_root=temp_storage)

        abs_path, rel_path = await service.store_export(b"%PDF-", "報" * 100 + ".pdf")

        assert rel_path.endswith(".pdf")
        assert Path(abs_path).read_bytes() == b"%PDF-"

    @pytest.mark.asyncio
    async def test_write_failure(self, temp_storage):
        service = FileService(storage_root=temp_storage)

        with patch("textstation.services.file_service.aiofiles.open", new_callable=MagicMock) as mock_open:
            mock_open.side_effect = PermissionError("read-only file system")
            with pytest.raises(FileStorageError):
                await service.store_export(b"x", "a.pdf")

    def test_ensure_directories_idempotent(self, tmp_path):
        service = FileService(storage_root=str(tmp_path / "new_root"))
        service.ensure_directories()
        service.ensure_directories()
        assert (tmp_path / "new_root" / "exports").is_dir()


class TestResolve:

    @pytest.mark.asyncio
    async def test_resolves_stored_file(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        abs_path, rel_path = await service.store_export(b"x", "a.pdf")

        assert service.resolve(rel_path) == Path(abs_path)

    def test_missing_file(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        with pytest.raises(NotFoundError):
            service.resolve("exports/missing.pdf")

    def test_directory_is_not_a_file(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        service.ensure_directories()
        with pytest.raises(NotFoundError):
            service.resolve("exports")

    def test_traversal_rejected(self, tmp_path):
        secret = tmp_path / "secret.txt"
        secret.write_text("do not serve")
        storage = tmp_path / "storage"
        storage.mkdir()
        service = FileService(storage_root=str(storage))

        with pytest.raises(NotFoundError):
            service.resolve("../secret.txt")
        with pytest.raises(NotFoundError):
            service.resolve(str(secret))


class TestDownloadLinks:

    def _service(self, temp_storage):
        return FileService(storage_root=temp_storage, signing_key="test-key", url_ttl=86400)

    def test_signed_link_accepted(self, temp_storage):
        service = self._service(temp_storage)
        token, _ = service.sign_download("exports/報告.pdf")

        service.verify_download("exports/報告.pdf", token)

    def test_link_lifetime(self, temp_storage):
        service = self._service(temp_storage)
        now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

        _, expires_at = service.sign_download("exports/a.pdf", now=now)

        assert expires_at == now + timedelta(hours=24)

    def test_missing_token_refused(self, temp_storage):
        service = self._service(temp_storage)
        with pytest.raises(PermissionDeniedError, match="not signed"):
            service.verify_download("exports/a.pdf", None)
        with pytest.raises(PermissionDeniedError, match="not signed"):
            service.verify_download("exports/a.pdf", "")

    def test_expired_token_refused(self, temp_storage):
        service = self._service(temp_storage)
        token, _ = service.sign_download(
            "exports/a.pdf", now=datetime.now(timezone.utc) - timedelta(hours=25)
        )

        with pytest.raises(PermissionDeniedError, match="expired"):
            service.verify_download("exports/a.pdf", token)

    def test_token_for_other_file_refused(self, temp_storage):
        service = self._service(temp_storage)
        token, _ = service.sign_download("exports/mine.pdf")

        with pytest.raises(PermissionDeniedError, match="invalid"):
            service.verify_download("exports/yours.pdf", token)

    def test_forged_token_refused(self, temp_storage):
        service = self._service(temp_storage)
        forged = jwt.encode(
            {"path": "exports/a.pdf", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "another-key",
            algorithm=DOWNLOAD_TOKEN_ALGORITHM,
        )

        with pytest.raises(PermissionDeniedError, match="invalid"):
            service.verify_download("exports/a.pdf", forged)

    def test_token_without_expiry_refused(self, temp_storage):
        service = self._service(temp_storage)
        token = jwt.encode({"path": "exports/a.pdf"}, "test-key", algorithm=DOWNLOAD_TOKEN_ALGORITHM)

        with pytest.raises(PermissionDeniedError, match="invalid"):
            service.verify_download("exports/a.pdf", token)

    def test_generated_key_when_unconfigured(self, temp_storage):
        first = FileService(storage_root=temp_storage)
        second = FileService(storage_root=temp_storage)
        token, _ = first.sign_download("exports/a.pdf")

        first.verify_download("exports/a.pdf", token)
        with pytest.raises(PermissionDeniedError):
            second.verify_download("exports/a.pdf", token)
