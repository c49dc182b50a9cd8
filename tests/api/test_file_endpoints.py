"""
API tests for container and file endpoints.
"""

import pytest
from httpx import AsyncClient

from filegate.features.activity.service import activity_service
from filegate.features.files.router import get_admission_validator
from filegate.features.files.validation import AdmissionValidator, FileValidationOptions
from tests.conftest import EXTERNAL_ID, auth_headers, make_token
from tests.factories import ThirdPartyFactory

PDF_BYTES = b"%PDF-1.7\n%test document\n"
FILES_URL = "/api/v1/containers/{}/files"


@pytest.fixture
async def tenant(db_session, storage):
    """Active third party bound to the external test identity, with its container."""
    party = await ThirdPartyFactory.create(
        db_session,
        container_name="sft-acme",
        external_identity_ref=EXTERNAL_ID,
    )
    await storage.create_container(party.container_name)
    return party


@pytest.fixture
async def other_tenant(db_session, storage):
    party = await ThirdPartyFactory.create(
        db_session,
        container_name="sft-globex",
        external_identity_ref="sp-2",
    )
    await storage.create_container(party.container_name)
    return party


async def upload(client: AsyncClient, headers, container="sft-acme", name="report.pdf",
                 content=PDF_BYTES, directory="inbound"):
    return await client.post(
        FILES_URL.format(container),
        params={"dir": directory},
        files={"file": (name, content, "application/octet-stream")},
        headers=headers,
    )


@pytest.mark.api
class TestUpload:
    """Test POST /containers/{name}/files."""

    async def test_upload(self, client, db_session, tenant, external_headers):
        response = await upload(client, external_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["container"] == "sft-acme"
        assert data["directory"] == "inbound"
        assert data["file_name"] == "report.pdf"
        assert data["size_bytes"] == len(PDF_BYTES)

        records = await activity_service.get_activity(db_session, "sft-acme")
        assert len(records) == 1
        assert records[0].action == "Upload"
        assert records[0].performed_by == "acme-app"
        assert records[0].size_bytes == len(PDF_BYTES)

    async def test_upload_name_is_sanitized(self, client, storage, tenant, external_headers):
        response = await upload(client, external_headers, name="Q3 report (final).csv", content=b"a,b\n")

        assert response.status_code == 201
        assert response.json()["file_name"] == "Q3_report__final_.csv"
        assert await storage.exists("sft-acme", "inbound/Q3_report__final_.csv")

    async def test_duplicate_upload_conflicts(self, client, db_session, storage, tenant, external_headers):
        await upload(client, external_headers)

        response = await upload(client, external_headers, content=b"%PDF-other")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "FILE_EXISTS"
        assert len(await activity_service.get_activity(db_session, "sft-acme")) == 1

        with await storage.get("sft-acme", "inbound/report.pdf") as f:
            assert f.read() == PDF_BYTES

    async def test_same_name_in_other_directory(self, client, tenant, external_headers):
        await upload(client, external_headers)

        response = await upload(client, external_headers, directory="outbound")

        assert response.status_code == 201

    @pytest.mark.parametrize("directory", ["secret", "Inbound", "inbound/..", ""])
    async def test_invalid_directory(self, client, tenant, external_headers, directory):
        response = await upload(client, external_headers, directory=directory)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_DIRECTORY"

    async def test_missing_directory(self, client, tenant, external_headers):
        response = await client.post(
            FILES_URL.format("sft-acme"),
            files={"file": ("report.pdf", PDF_BYTES, "application/pdf")},
            headers=external_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_DIRECTORY"

    async def test_directory_checked_before_access(self, client, other_tenant, external_headers):
        response = await upload(client, external_headers, container="sft-globex", directory="nope")

        assert response.status_code == 400

    async def test_content_mismatch(self, client, storage, tenant, external_headers):
        response = await upload(client, external_headers, name="fake.pdf", content=b"MZ\x90\x00 not a pdf")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "CONTENT_MISMATCH"
        assert not await storage.exists("sft-acme", "inbound/fake.pdf")

    async def test_disallowed_extension(self, client, tenant, external_headers):
        response = await upload(client, external_headers, name="run.exe", content=b"MZ\x90\x00")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_FILE_TYPE"

    async def test_unusable_file_name(self, client, tenant, external_headers):
        response = await upload(client, external_headers, name="...", content=b"text")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_FILENAME"

    async def test_empty_file(self, client, tenant, external_headers):
        response = await upload(client, external_headers, name="empty.txt", content=b"")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "EMPTY_FILE"

    async def test_no_file_part(self, client, tenant, external_headers):
        response = await client.post(
            FILES_URL.format("sft-acme"),
            params={"dir": "inbound"},
            data={"note": "no file here"},
            headers=external_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "EMPTY_FILE"

    async def test_file_too_large(self, app, client, tenant, external_headers):
        app.dependency_overrides[get_admission_validator] = lambda: AdmissionValidator(
            FileValidationOptions(max_size_bytes=10)
        )

        response = await upload(client, external_headers, name="big.txt", content=b"x" * 11)

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "FILE_TOO_LARGE"


@pytest.mark.api
class TestAccess:
    """Gate behaviour on file routes."""

    async def test_other_tenants_container_forbidden(self, client, storage, other_tenant, external_headers):
        response = await upload(client, external_headers, container="sft-globex")

        assert response.status_code == 403
        assert response.json()["error"] == {"code": "FORBIDDEN", "message": "Access denied."}
        assert not await storage.exists("sft-globex", "inbound/report.pdf")

    async def test_unknown_container_forbidden(self, client, external_headers):
        response = await client.get(
            FILES_URL.format("sft-nowhere"), params={"dir": "inbound"}, headers=external_headers
        )

        assert response.status_code == 403

    async def test_inactive_tenant_forbidden(self, client, db_session, storage, external_headers):
        await ThirdPartyFactory.create(
            db_session,
            container_name="sft-gone",
            external_identity_ref=EXTERNAL_ID,
            status="inactive",
        )
        await storage.create_container("sft-gone")

        response = await client.get(FILES_URL.format("sft-gone"), params={"dir": "inbound"}, headers=external_headers)

        assert response.status_code == 403

    async def test_org_user_can_access_any_active_container(self, client, tenant, org_user_headers):
        response = await upload(client, org_user_headers)

        assert response.status_code == 201

    async def test_admin_can_access_any_active_container(self, client, tenant, admin_headers):
        response = await client.get(FILES_URL.format("sft-acme"), params={"dir": "inbound"}, headers=admin_headers)

        assert response.status_code == 200

    async def test_missing_token(self, client, tenant):
        response = await client.get(FILES_URL.format("sft-acme"), params={"dir": "inbound"})

        assert response.status_code == 401

    async def test_invalid_token(self, client, tenant):
        response = await client.get(
            FILES_URL.format("sft-acme"),
            params={"dir": "inbound"},
            headers=auth_headers("not-a-jwt"),
        )

        assert response.status_code == 401

    async def test_token_without_identity(self, client, tenant):
        headers = auth_headers(make_token(None, ["SFT.Admin"]))

        response = await client.get(FILES_URL.format("sft-acme"), params={"dir": "inbound"}, headers=headers)

        assert response.status_code == 403


@pytest.mark.api
class TestListAndDownload:
    """Test listing, download and delete."""

    async def test_list_files_hides_placeholder(self, client, tenant, external_headers):
        await upload(client, external_headers)

        response = await client.get(FILES_URL.format("sft-acme"), params={"dir": "inbound"}, headers=external_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["container"] == "sft-acme"
        assert data["directory"] == "inbound"
        assert [f["name"] for f in data["files"]] == ["report.pdf"]
        assert data["files"][0]["size_bytes"] == len(PDF_BYTES)
        assert data["files"][0]["access_tier"] == "Hot"

    async def test_list_empty_directory(self, client, tenant, external_headers):
        response = await client.get(FILES_URL.format("sft-acme"), params={"dir": "outbound"}, headers=external_headers)

        assert response.json()["files"] == []

    async def test_download(self, client, db_session, tenant, external_headers):
        await upload(client, external_headers)

        response = await client.get(
            FILES_URL.format("sft-acme") + "/report.pdf",
            params={"dir": "inbound"},
            headers=external_headers,
        )

        assert response.status_code == 200
        assert response.content == PDF_BYTES
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.headers["content-disposition"] == 'attachment; filename="report.pdf"'
        assert response.headers["x-content-type-options"] == "nosniff"

        actions = [r.action for r in await activity_service.get_activity(db_session, "sft-acme")]
        assert sorted(actions) == ["Download", "Upload"]

    async def test_download_missing(self, client, tenant, external_headers):
        response = await client.get(
            FILES_URL.format("sft-acme") + "/nope.pdf",
            params={"dir": "inbound"},
            headers=external_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "FILE_NOT_FOUND"

    async def test_delete(self, client, db_session, storage, tenant, external_headers):
        await upload(client, external_headers)

        response = await client.delete(
            FILES_URL.format("sft-acme") + "/report.pdf",
            params={"dir": "inbound"},
            headers=external_headers,
        )

        assert response.status_code == 204
        assert not await storage.exists("sft-acme", "inbound/report.pdf")
        actions = sorted(r.action for r in await activity_service.get_activity(db_session, "sft-acme"))
        assert actions == ["Delete", "Upload"]

    async def test_delete_missing_is_not_logged(self, client, db_session, tenant, external_headers):
        response = await client.delete(
            FILES_URL.format("sft-acme") + "/nope.pdf",
            params={"dir": "inbound"},
            headers=external_headers,
        )

        assert response.status_code == 204
        assert await activity_service.get_activity(db_session, "sft-acme") == []

    async def test_placeholder_cannot_be_downloaded(self, client, tenant, external_headers):
        response = await client.get(
            FILES_URL.format("sft-acme") + "/.keep", params={"dir": "inbound"}, headers=external_headers
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "FILE_NOT_FOUND"

    async def test_placeholder_cannot_be_deleted(self, client, db_session, storage, tenant, external_headers):
        response = await client.delete(
            FILES_URL.format("sft-acme") + "/.keep", params={"dir": "inbound"}, headers=external_headers
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "FILE_NOT_FOUND"
        assert await storage.exists("sft-acme", "inbound/.keep")
        assert await activity_service.get_activity(db_session, "sft-acme") == []


@pytest.mark.api
class TestListContainers:
    """Test GET /containers."""

    async def test_external_sees_own_container(self, client, tenant, other_tenant, external_headers):
        response = await client.get("/api/v1/containers", headers=external_headers)

        assert response.status_code == 200
        assert response.json() == {"containers": ["sft-acme"]}

    async def test_org_user_sees_all_active(self, client, db_session, storage, tenant, other_tenant, org_user_headers):
        await ThirdPartyFactory.create(db_session, container_name="sft-gone", status="inactive")
        await storage.create_container("sft-gone")

        response = await client.get("/api/v1/containers", headers=org_user_headers)

        assert response.json() == {"containers": ["sft-acme", "sft-globex"]}

    async def test_container_must_exist_in_storage(self, client, db_session, org_user_headers):
        await ThirdPartyFactory.create(db_session, container_name="sft-unprovisioned")

        response = await client.get("/api/v1/containers", headers=org_user_headers)

        assert response.json() == {"containers": []}

    async def test_token_without_identity(self, client, tenant):
        headers = auth_headers(make_token(None, ["SFT.User"]))

        response = await client.get("/api/v1/containers", headers=headers)

        assert response.status_code == 401


@pytest.mark.api
async def test_correlation_id_is_echoed(client, tenant, external_headers):
    response = await client.get(
        FILES_URL.format("sft-acme"),
        params={"dir": "inbound"},
        headers={**external_headers, "X-Correlation-ID": "corr-abc"},
    )

    assert response.headers["X-Correlation-ID"] == "corr-abc"
