"""
TextStation Backend — API Endpoint Tests
=========================================

What:  HTTP-level tests for every router: request parsing, 400 validation
       messages, service wiring, camelCase responses and the error envelope.
How:   httpx AsyncClient over ASGITransport; the DB session dependency is
       overridden and service singletons are patched per test.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from textstation.database import get_db_session
from textstation.exceptions import (
    AnalysisError,
    DatabaseError,
    DriveServiceError,
    NotFoundError,
    PermissionDeniedError,
)
from textstation.main import app
from textstation.schemas.analysis import AnalysisResult, AmbiguousPhraseIssue
from textstation.schemas.drive import ExportResponse, SearchItem, SearchResponse
from textstation.schemas.history import BackupListItem, BackupResponse
from textstation.schemas.snippet import SnippetListResponse
from textstation.services.drive_service import DriveUploadResult


@pytest.fixture(autouse=True)
def mock_db(mock_db_session):
    async def override():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = override
    yield mock_db_session
    app.dependency_overrides.clear()


# ══════════════════════════════════════════════════════════════════════════
# Analysis
# ══════════════════════════════════════════════════════════════════════════


class TestAnalysisRoutes:

    @pytest.mark.asyncio
    async def test_connection(self, test_client):
        response = await test_client.post("/api/test-connection")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "APIサーバーに正常に接続されました"}

    @pytest.mark.asyncio
    async def test_analyze(self, test_client, mock_db):
        result = AnalysisResult(
            media_score=95,
            ambiguous_phrases=[AmbiguousPhraseIssue(text="とても", count=2, suggestion="具体的に")],
        )
        with patch("textstation.routes.analysis.analysis_service") as service:
            service.analyze_request = AsyncMock(return_value=result)
            response = await test_client.post(
                "/api/analyze",
                json={"text": "とても良い、とても悪い", "mediaType": "news", "detailedAnalysis": True},
            )

        assert response.status_code == 200
        assert response.json() == {
            "mediaScore": 95,
            "ambiguousPhrases": [{"text": "とても", "count": 2, "suggestion": "具体的に"}],
            "repetitiveEndings": [],
            "mediaSpecificIssues": [],
            "improvements": [],
        }
        service.analyze_request.assert_awaited_once_with(
            db=mock_db, text="とても良い、とても悪い", media_type="news", detailed=True
        )

    @pytest.mark.asyncio
    async def test_analyze_with_real_analyzer(self, test_client, mock_db):
        """Rule store down: the analysis still runs, with no rules."""
        mock_db.execute = AsyncMock(side_effect=Exception("connection refused"))

        response = await test_client.post("/api/analyze", json={"text": "はい。はい。はい。"})

        assert response.status_code == 200
        body = response.json()
        assert body["mediaScore"] == 95
        assert body["repetitiveEndings"][0]["pattern"] == "はい"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": None}])
    async def test_analyze_missing_text(self, test_client, payload):
        response = await test_client.post("/api/analyze", json=payload)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "分析するテキストが指定されていません"
        assert body["details"] == {"field": "text"}

    @pytest.mark.asyncio
    async def test_analysis_error_is_500(self, test_client):
        with patch("textstation.routes.analysis.analysis_service") as service:
            service.analyze_request = AsyncMock(
                side_effect=AnalysisError(message="Text analysis failed: invalid pattern '('")
            )
            response = await test_client.post("/api/analyze", json={"text": "x"})

        assert response.status_code == 500
        assert response.json()["error"] == "analysis_error"
        assert "invalid pattern" in response.json()["message"]


# ══════════════════════════════════════════════════════════════════════════
# Drive search and export
# ══════════════════════════════════════════════════════════════════════════


class TestDriveRoutes:

    @pytest.mark.asyncio
    async def test_search(self, test_client):
        found = SearchResponse(
            items=[SearchItem(id="1", title="議事録", mime_type="text/plain", snippet="…")],
            has_more=False,
        )
        with patch("textstation.routes.drive.drive_service") as service:
            service.search = AsyncMock(return_value=found)
            response = await test_client.post(
                "/api/search", json={"keyword": "予算", "fileTypes": ["docs"], "period": "1m"}
            )

        assert response.status_code == 200
        assert response.json()["items"][0]["mimeType"] == "text/plain"
        service.search.assert_awaited_once_with(keyword="予算", file_types=["docs"], period="1m")

    @pytest.mark.asyncio
    async def test_search_missing_keyword(self, test_client):
        response = await test_client.post("/api/search", json={"keyword": ""})
        assert response.status_code == 400
        assert response.json()["message"] == "検索キーワードが指定されていません"

    @pytest.mark.asyncio
    async def test_search_invalid_period(self, test_client):
        response = await test_client.post("/api/search", json={"keyword": "x", "period": "2y"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_search_drive_unavailable(self, test_client):
        with patch("textstation.routes.drive.drive_service") as service:
            service.search = AsyncMock(side_effect=DriveServiceError(message="Drive search failed: quota"))
            response = await test_client.post("/api/search", json={"keyword": "x"})

        assert response.status_code == 502
        assert response.json()["error"] == "drive_service_error"

    @pytest.mark.asyncio
    async def test_export(self, test_client):
        exported = ExportResponse(title="報告", url="/api/files/exports/x.pdf", drive_url=None)
        with patch("textstation.routes.drive.export_service") as service:
            service.generate_pdf = AsyncMock(return_value=exported)
            response = await test_client.post(
                "/api/export-pdf",
                json={"text": "本文", "options": {"title": "報告", "fontSize": 12, "includeFooter": False}},
            )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "title": "報告",
            "url": "/api/files/exports/x.pdf",
            "expiresAt": None,
            "driveUrl": None,
        }
        options = service.generate_pdf.call_args.kwargs["options"]
        assert options.font_size == 12
        assert options.include_footer is False
        assert options.include_header is True

    @pytest.mark.asyncio
    async def test_export_missing_text(self, test_client):
        response = await test_client.post("/api/export-pdf", json={"results": "x"})
        assert response.status_code == 400
        assert response.json()["message"] == "出力するテキストが指定されていません"


# ══════════════════════════════════════════════════════════════════════════
# Snippets
# ══════════════════════════════════════════════════════════════════════════


class TestSnippetRoutes:

    @pytest.mark.asyncio
    async def test_get_snippets(self, test_client):
        listing = SnippetListResponse(categories=["未分類"], shared_categories=["未分類"])
        with patch("textstation.routes.snippets.snippet_service") as service:
            service.list_snippets = AsyncMock(return_value=listing)
            response = await test_client.post("/api/get-snippets")

        assert response.status_code == 200
        assert response.json() == {
            "personal": [],
            "shared": [],
            "categories": ["未分類"],
            "sharedCategories": ["未分類"],
        }

    @pytest.mark.asyncio
    async def test_get_snippet_not_found(self, test_client):
        snippet_id = str(uuid4())
        with patch("textstation.routes.snippets.snippet_service") as service:
            service.get_snippet = AsyncMock(
                side_effect=NotFoundError(resource="snippet", resource_id=snippet_id)
            )
            response = await test_client.post(
                "/api/get-snippet", json={"id": snippet_id, "isShared": True}
            )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert service.get_snippet.call_args.kwargs["is_shared"] is True

    @pytest.mark.asyncio
    async def test_save_snippet_defaults(self, test_client, mock_db):
        with patch("textstation.routes.snippets.snippet_service") as service:
            service.save_snippet = AsyncMock(return_value="new-id")
            response = await test_client.post(
                "/api/save-snippet", json={"title": "署名", "content": "敬具"}
            )

        assert response.json() == {"success": True, "id": "new-id"}
        service.save_snippet.assert_awaited_once_with(
            mock_db, title="署名", content="敬具", category="未分類", variables=[]
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path,payload,message",
        [
            ("/api/get-snippet", {}, "スニペットIDが指定されていません"),
            ("/api/delete-snippet", {"id": ""}, "スニペットIDが指定されていません"),
            ("/api/save-snippet", {"title": "t"}, "タイトルと内容は必須です"),
            ("/api/update-snippet", {"title": "t", "content": "c"}, "IDとタイトルと内容は必須です"),
        ],
    )
    async def test_validation_messages(self, test_client, path, payload, message):
        response = await test_client.post(path, json=payload)
        assert response.status_code == 400
        assert response.json()["message"] == message

    @pytest.mark.asyncio
    async def test_update_snippet(self, test_client, mock_db):
        with patch("textstation.routes.snippets.snippet_service") as service:
            service.update_snippet = AsyncMock(return_value=None)
            response = await test_client.post(
                "/api/update-snippet",
                json={"id": "abc", "title": "t", "content": "c", "variables": [{"name": "x"}]},
            )

        assert response.json() == {"success": True}
        service.update_snippet.assert_awaited_once_with(
            mock_db, "abc", title="t", category="未分類", content="c", variables=[{"name": "x"}]
        )

    @pytest.mark.asyncio
    async def test_delete_shared_snippet_forbidden(self, test_client):
        with patch("textstation.routes.snippets.snippet_service") as service:
            service.delete_snippet = AsyncMock(
                side_effect=PermissionDeniedError(message="Shared snippets cannot be deleted")
            )
            response = await test_client.post("/api/delete-snippet", json={"id": "abc"})

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"


# ══════════════════════════════════════════════════════════════════════════
# Logs and backups
# ══════════════════════════════════════════════════════════════════════════


class TestHistoryRoutes:

    @pytest.mark.asyncio
    async def test_aggregate_logs(self, test_client, mock_db):
        with patch("textstation.routes.history.history_service") as service:
            service.save_log_aggregation = AsyncMock(return_value=None)
            response = await test_client.post(
                "/api/aggregate-logs",
                json={"timestamp": 1, "week": "2024-W01", "logs": [{"a": 1}], "errors": [], "user": "u"},
            )

        assert response.json() == {"success": True}
        service.save_log_aggregation.assert_awaited_once_with(
            mock_db, timestamp=1, week="2024-W01", logs=[{"a": 1}], errors=[], user="u"
        )

    @pytest.mark.asyncio
    async def test_create_backup(self, test_client):
        with patch("textstation.routes.history.history_service") as service:
            service.save_backup = AsyncMock(return_value=str(uuid4()))
            response = await test_client.post(
                "/api/create-backup", json={"timestamp": 1, "text": "本文", "results": {"mediaScore": 90}}
            )

        assert response.json() == {"success": True}
        assert service.save_backup.call_args.kwargs["results"] == {"mediaScore": 90}

    @pytest.mark.asyncio
    async def test_get_backups(self, test_client):
        items = [BackupListItem(id="b1", date="2024/5/1", timestamp=5, user=None)]
        with patch("textstation.routes.history.history_service") as service:
            service.list_backups = AsyncMock(return_value=items)
            response = await test_client.post("/api/get-backups")

        assert response.json() == [{"id": "b1", "date": "2024/5/1", "timestamp": 5, "user": None}]

    @pytest.mark.asyncio
    async def test_restore_backup(self, test_client):
        backup = BackupResponse(timestamp=5, text="本文", created_at=6)
        with patch("textstation.routes.history.history_service") as service:
            service.get_backup = AsyncMock(return_value=backup)
            response = await test_client.post("/api/restore-backup", json={"id": "b1"})

        assert response.status_code == 200
        assert response.json()["createdAt"] == 6

    @pytest.mark.asyncio
    async def test_restore_backup_missing_id(self, test_client):
        response = await test_client.post("/api/restore-backup", json={})
        assert response.status_code == 400
        assert response.json()["message"] == "バックアップIDが指定されていません"

    @pytest.mark.asyncio
    async def test_database_error_hides_details(self, test_client):
        with patch("textstation.routes.history.history_service") as service:
            service.list_backups = AsyncMock(
                side_effect=DatabaseError(message="boom", context={"dsn": "secret"})
            )
            response = await test_client.post("/api/get-backups")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert "secret" not in response.text
        assert "details" not in body


# ══════════════════════════════════════════════════════════════════════════
# Files, health, cross-cutting
# ══════════════════════════════════════════════════════════════════════════


class TestFileRoute:

    @pytest.mark.asyncio
    async def test_serves_stored_export(self, test_client):
        from textstation.services.file_service import file_service

        _, relative_path = await file_service.store_export(b"%PDF-1.4 route test", "route.pdf")
        token, _ = file_service.sign_download(relative_path)

        response = await test_client.get(f"/api/files/{relative_path}", params={"token": token})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content == b"%PDF-1.4 route test"

    @pytest.mark.asyncio
    async def test_unsigned_link_refused(self, test_client):
        from textstation.services.file_service import file_service

        _, relative_path = await file_service.store_export(b"%PDF-1.4", "unsigned.pdf")

        response = await test_client.get(f"/api/files/{relative_path}")

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"

    @pytest.mark.asyncio
    async def test_expired_link_refused(self, test_client):
        from textstation.services.file_service import file_service

        _, relative_path = await file_service.store_export(b"%PDF-1.4", "expired.pdf")
        token, _ = file_service.sign_download(
            relative_path, now=datetime.now(timezone.utc) - timedelta(days=2)
        )

        response = await test_client.get(f"/api/files/{relative_path}", params={"token": token})

        assert response.status_code == 403
        assert "expired" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_link_for_other_file_refused(self, test_client):
        from textstation.services.file_service import file_service

        await file_service.store_export(b"%PDF-1.4", "theirs.pdf")
        token, _ = file_service.sign_download("exports/mine.pdf")

        response = await test_client.get("/api/files/exports/theirs.pdf", params={"token": token})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_file(self, test_client):
        from textstation.services.file_service import file_service

        token, _ = file_service.sign_download("exports/nope.pdf")

        response = await test_client.get("/api/files/exports/nope.pdf", params={"token": token})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_export_url_downloads(self, test_client):
        from textstation.services.export_service import export_service

        with patch.object(export_service, "drive") as drive:
            drive.upload_pdf = AsyncMock(return_value=DriveUploadResult(uploaded=False, error="off"))
            exported = await test_client.post(
                "/api/export-pdf", json={"text": "本文", "options": {"title": "週報"}}
            )

        url = exported.json()["url"]
        response = await test_client.get(url)

        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

class TestHealth:

    def _engine(self, fail=False):
        engine = MagicMock()
        if fail:
            engine.connect.side_effect = OSError("connection refused")
        else:
            engine.connect.return_value.__aenter__ = AsyncMock(return_value=AsyncMock())
            engine.connect.return_value.__aexit__ = AsyncMock(return_value=False)
        return engine

    @pytest.mark.asyncio
    async def test_degraded_without_drive_credentials(self, test_client):
        with patch("textstation.database.engine", self._engine()):
            response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["database"] == "connected"
        assert body["drive"] == "not_configured"

    @pytest.mark.asyncio
    async def test_unhealthy_when_database_down(self, test_client):
        with patch("textstation.database.engine", self._engine(fail=True)):
            response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


@pytest.mark.asyncio
async def test_request_id_echoed(test_client):
    response = await test_client.post("/api/test-connection", headers={"X-Request-ID": "abc12345"})
    assert response.headers["X-Request-ID"] == "abc12345"


@pytest.mark.asyncio
async def test_unexpected_error_envelope(test_client):
    with patch("textstation.routes.snippets.snippet_service") as service:
        service.list_snippets = AsyncMock(side_effect=RuntimeError("kaboom"))
        response = await test_client.post("/api/get-snippets")

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "internal_server_error"
    assert "kaboom" not in body["message"]
