"""
PDF signed-URL endpoint tests.
"""

import pytest
from botocore.exceptions import ClientError
from httpx import AsyncClient

from sermonvault.api.routes.pdf import is_owned_path


class TestIsOwnedPath:

    @pytest.mark.parametrize("path,owned", [
        ("7/42/grace.pdf", True),
        ("7/grace.pdf", True),
        ("8/42/grace.pdf", False),
        ("77/42/grace.pdf", False),
        ("7/../8/42/grace.pdf", False),
        ("7/./grace.pdf", False),
        ("7//grace.pdf", False),
        ("7", False),
        ("/7/42/grace.pdf", False),
    ])
    def test_paths(self, path, owned):
        assert is_owned_path(path, 7) is owned


@pytest.mark.asyncio
class TestPdfUrl:

    async def test_signed_url(self, client: AsyncClient, auth_headers, test_user, s3_client):
        path = f"{test_user.id}/3/grace.pdf"

        response = await client.get("/api/pdf", params={"path": path}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"url": "https://signed.example.com/sermon.pdf?X-Amz-Signature=abc"}
        s3_client.generate_presigned_url.assert_called_once_with(
            ClientMethod="get_object",
            Params={"Bucket": "test-sermons", "Key": path},
            ExpiresIn=3600,
        )

    async def test_missing_path(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/pdf", headers=auth_headers)
        assert response.status_code == 400

    async def test_other_users_path(self, client: AsyncClient, auth_headers, other_user, s3_client):
        response = await client.get("/api/pdf", params={"path": f"{other_user.id}/3/grace.pdf"}, headers=auth_headers)

        assert response.status_code == 403
        s3_client.generate_presigned_url.assert_not_called()

    async def test_traversal(self, client: AsyncClient, auth_headers, test_user, other_user):
        path = f"{test_user.id}/../{other_user.id}/3/grace.pdf"

        response = await client.get("/api/pdf", params={"path": path}, headers=auth_headers)

        assert response.status_code == 403

    async def test_signing_failure(self, client: AsyncClient, auth_headers, test_user, s3_client):
        s3_client.generate_presigned_url.side_effect = ClientError(
            {"Error": {"Code": "500", "Message": "boom"}}, "GetObject"
        )

        response = await client.get("/api/pdf", params={"path": f"{test_user.id}/3/grace.pdf"}, headers=auth_headers)

        assert response.status_code == 500

    async def test_requires_auth(self, client: AsyncClient, s3_client):
        response = await client.get("/api/pdf", params={"path": "1/1/grace.pdf"})

        assert response.status_code == 401
        s3_client.generate_presigned_url.assert_not_called()
