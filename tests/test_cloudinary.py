"""Unit tests for the Cloudinary client."""

import hashlib
from urllib.parse import parse_qs

import httpx
import pytest

from core import cloudinary

CREDENTIALS = cloudinary.CloudinaryCredentials(cloud_name="demo", api_key="123456", api_secret="abcd")


def _form(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


class TestSignParams:
    """Signatures follow Cloudinary's sorted key=value scheme."""

    def test_sorted_pairs_plus_secret(self):
        params = {"timestamp": 1315060510, "public_id": "sample_image", "folder": "produtos"}
        expected = hashlib.sha1(b"folder=produtos&public_id=sample_image&timestamp=1315060510abcd").hexdigest()
        assert cloudinary.sign_params(params, "abcd") == expected

    def test_skips_unsigned_and_empty_params(self):
        signed = cloudinary.sign_params(
            {"timestamp": 1, "file": "data:...", "api_key": "123456", "folder": "", "public_id": None},
            "abcd",
        )
        assert signed == hashlib.sha1(b"timestamp=1abcd").hexdigest()

    def test_booleans_are_lowercase(self):
        signed = cloudinary.sign_params({"invalidate": True, "timestamp": 1}, "abcd")
        assert signed == hashlib.sha1(b"invalidate=true&timestamp=1abcd").hexdigest()


class TestCredentials:
    def test_reads_environment(self):
        creds = cloudinary.credentials_from_env()
        assert creds == cloudinary.CloudinaryCredentials(cloud_name="demo", api_key="123456", api_secret="shh")

    def test_missing_values_raise(self, monkeypatch):
        monkeypatch.delenv("CLOUDINARY_API_KEY")
        with pytest.raises(cloudinary.CloudinaryError, match="CLOUDINARY_API_KEY"):
            cloudinary.credentials_from_env()


class TestUploadImage:
    @pytest.mark.asyncio
    async def test_posts_signed_form(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"public_id": "produtos/abc123", "secure_url": "https://res.cloudinary.com/demo/produtos/abc123.jpg"},
            )

        result = await cloudinary.upload_image(
            credentials=CREDENTIALS,
            file="data:image/png;base64,iVBORw0KGgo=",
            folder="produtos",
            transport=httpx.MockTransport(handler),
        )

        assert result["public_id"] == "produtos/abc123"
        request = seen[0]
        assert request.url.path == "/v1_1/demo/image/upload"
        form = _form(request)
        assert form["folder"] == "produtos"
        assert form["api_key"] == "123456"
        assert form["file"] == "data:image/png;base64,iVBORw0KGgo="
        assert form["signature"] == cloudinary.sign_params(
            {"folder": "produtos", "timestamp": form["timestamp"]}, "abcd"
        )

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": {"message": "Invalid Signature"}}))
        with pytest.raises(cloudinary.CloudinaryError, match="401"):
            await cloudinary.upload_image(credentials=CREDENTIALS, file="data:x", folder="produtos", transport=transport)

    @pytest.mark.asyncio
    async def test_missing_secure_url_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"public_id": "produtos/x"}))
        with pytest.raises(cloudinary.CloudinaryError, match="secure_url"):
            await cloudinary.upload_image(credentials=CREDENTIALS, file="data:x", folder="produtos", transport=transport)

    @pytest.mark.asyncio
    async def test_empty_file_raises_without_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(cloudinary.CloudinaryError):
            await cloudinary.upload_image(
                credentials=CREDENTIALS, file="  ", folder="produtos", transport=httpx.MockTransport(handler)
            )

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(cloudinary.CloudinaryError, match="connection refused"):
            await cloudinary.upload_image(
                credentials=CREDENTIALS, file="data:x", folder="produtos", transport=httpx.MockTransport(handler)
            )


class TestDestroyImage:
    @pytest.mark.asyncio
    async def test_posts_public_id_with_invalidate(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"result": "ok"})

        result = await cloudinary.destroy_image(
            credentials=CREDENTIALS,
            public_id="produtos/abc123",
            transport=httpx.MockTransport(handler),
        )

        assert result == {"result": "ok"}
        assert seen[0].url.path == "/v1_1/demo/image/destroy"
        form = _form(seen[0])
        assert form["public_id"] == "produtos/abc123"
        assert form["invalidate"] == "true"

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(cloudinary.CloudinaryError, match="non-JSON"):
            await cloudinary.destroy_image(credentials=CREDENTIALS, public_id="produtos/x", transport=transport)
