"""Signing service - issues presigned URLs over HTTP."""

import json
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from osspresign.common.errors import ErrorCode, error_response
from osspresign.common.http import RequestIdMiddleware, client_address
from osspresign.common.logging import get_logger, setup_logging
from osspresign.common.metrics import MetricsMiddleware, metrics_endpoint, record_signing
from osspresign.common.settings import Settings, get_settings
from osspresign.common.tracing import setup_tracing, span
from osspresign.signer import (
    ConfigurationError,
    CryptoPrimitiveUnavailable,
    EncodingError,
    Presigner,
    SignerError,
    SigningRequest,
    get_hash_provider,
)

logger = get_logger(__name__)

# Fields that may be given at the top level instead of inside ``options``.
TOP_LEVEL_OPTIONS = (
    "accessKeyId",
    "accessKeySecret",
    "region",
    "bucket",
    "endpoint",
    "stsToken",
    "securityToken",
    "cloudBoxId",
)

MISSING_OPTIONS_MESSAGE = (
    "Missing required option(s). Required: accessKeyId, accessKeySecret, bucket "
    "(or set them in environment/secrets)"
)


class BadParameter(Exception):
    """A request parameter could not be parsed."""

    pass


def _parse_json_object(value: Any) -> dict[str, Any]:
    """Accept a dict or a JSON string holding one; anything else is empty."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return {}
    return dict(value) if isinstance(value, dict) else {}


def _parse_header_list(value: Any) -> list[str]:
    """List, JSON list string, or comma-separated names."""
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return [name.strip() for name in value.split(",") if name.strip()]
        if isinstance(value, str):
            return [value]
    if isinstance(value, list | tuple):
        return [str(name) for name in value]
    raise BadParameter("additionalHeaders must be a list of header names")


def _parse_expires(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise BadParameter(f"expires must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip(), 10)
    except ValueError:
        raise BadParameter(f"expires must be an integer, got {value!r}") from None


def _outcome(exc: SignerError) -> tuple[str, str]:
    if isinstance(exc, ConfigurationError):
        return "configuration_error", ErrorCode.CONFIGURATION
    if isinstance(exc, CryptoPrimitiveUnavailable):
        return "crypto_error", ErrorCode.CRYPTO_UNAVAILABLE
    if isinstance(exc, EncodingError):
        return "encoding_error", ErrorCode.ENCODING
    return "error", ErrorCode.SIGNING_FAILED


class SigningServer:
    """HTTP server for presigned URL generation."""

    def __init__(self, settings: Settings, presigner: Presigner | None = None):
        """Initialize server."""
        self._settings = settings
        self._presigner = presigner or Presigner(get_hash_provider(settings.hash_provider))

    async def startup(self) -> None:
        """Log startup configuration."""
        logger.info(
            "Starting signing service...",
            hash_provider=self._presigner.hash_provider.name,
            default_bucket=self._settings.bucket,
            default_region=self._settings.region,
        )

    async def shutdown(self) -> None:
        """Clean up resources."""
        pass

    async def _read_body(self, request: Request) -> dict[str, Any] | None:
        """Parsed JSON body, or None when absent or not a JSON object."""
        raw = await request.body()
        if not raw:
            return None
        try:
            body = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("Ignoring non-JSON request body")
            return None
        return body if isinstance(body, dict) else None

    def _apply_defaults(self, options: dict[str, Any]) -> None:
        """Fill credential/target fields from settings when absent."""
        defaults = {
            "accessKeyId": self._settings.access_key_id,
            "accessKeySecret": self._settings.access_key_secret,
            "bucket": self._settings.bucket,
            "region": self._settings.region,
            "endpoint": self._settings.endpoint,
            "stsToken": self._settings.security_token,
            "cloudBoxId": self._settings.cloud_box_id,
        }
        for key, value in defaults.items():
            if not options.get(key) and value:
                if key == "stsToken" and options.get("securityToken"):
                    continue
                options[key] = value

    def build_request(
        self,
        body: dict[str, Any] | None,
        query_params: dict[str, str],
    ) -> SigningRequest | None:
        """
        Merge body, query string and settings into a signing request.

        Returns:
            The request, or None when credentials/bucket are still missing

        Raises:
            BadParameter: A parameter has the wrong shape
            ConfigurationError: The merged options are rejected by the signer model
        """

        def get_param(key: str) -> Any:
            if body is not None and key in body:
                return body[key]
            return query_params.get(key)

        options = _parse_json_object(get_param("options"))
        for key in TOP_LEVEL_OPTIONS:
            value = get_param(key)
            if value is not None:
                options[key] = value

        self._apply_defaults(options)
        if not all(options.get(k) for k in ("accessKeyId", "accessKeySecret", "bucket")):
            return None

        method = get_param("method") or options.get("method") or "GET"
        options["method"] = str(method).upper()
        expires = get_param("expires")
        if expires is None:
            expires = options.get("expires")
        options["expires"] = _parse_expires(expires, self._settings.default_expires)

        object_name = get_param("objectName") or get_param("object") or get_param("key")
        if object_name:
            options["object"] = str(object_name)

        additional = get_param("additionalHeaders")
        if additional is None:
            additional = get_param("additional_headers")
        if additional is None:
            additional = options.get("additionalHeaders")
        if additional is None:
            additional = options.get("additional_headers")
        options.pop("additional_headers", None)
        if additional is not None:
            options["additionalHeaders"] = _parse_header_list(additional)

        parts = _parse_json_object(get_param("request"))
        for name in ("headers", "queries"):
            value = parts.get(name, options.get(name))
            if value is not None and not isinstance(value, dict):
                raise BadParameter(f"request.{name} must be an object")
            if value is not None:
                options[name] = value

        return SigningRequest.from_options(options)

    async def handle_sign(self, request: Request) -> Response:
        """GET/POST /sign - issue a presigned URL."""
        body = await self._read_body(request)

        try:
            signing_request = self.build_request(body, dict(request.query_params))
        except BadParameter as e:
            return error_response(ErrorCode.BAD_REQUEST, str(e), status_code=400)
        except ConfigurationError as e:
            return error_response(ErrorCode.BAD_REQUEST, str(e), status_code=400)

        if signing_request is None:
            logger.warning("Missing signing options", client=client_address(request))
            return error_response(ErrorCode.MISSING_FIELD, MISSING_OPTIONS_MESSAGE, status_code=400)

        method = signing_request.signing_method
        start = time.perf_counter()
        try:
            with span(
                "presign.sign_url",
                {
                    "oss.bucket": signing_request.bucket,
                    "oss.object": signing_request.object,
                    "oss.method": method,
                    "oss.expires": signing_request.expires,
                },
            ):
                url = self._presigner.sign_url(signing_request)
        except SignerError as e:
            outcome, code = _outcome(e)
            record_signing(method, outcome, time.perf_counter() - start)
            logger.error(
                "Presigning failed",
                bucket=signing_request.bucket,
                object=signing_request.object,
                error=str(e),
            )
            return error_response(code, str(e), status_code=500)

        record_signing(method, "success", time.perf_counter() - start)
        logger.info(
            "Presigned URL issued",
            bucket=signing_request.bucket,
            object=signing_request.object,
            method=method,
            expires=signing_request.expires,
        )
        return JSONResponse({"url": url})

    async def handle_health(self, _request: Request) -> JSONResponse:
        """Health check."""
        return JSONResponse({"status": "healthy"})


def create_app(settings: Settings | None = None, presigner: Presigner | None = None) -> Starlette:
    """Create the Starlette application."""
    settings = settings or get_settings()
    server = SigningServer(settings, presigner)

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        await server.startup()
        yield
        await server.shutdown()

    routes = [
        Route("/sign", server.handle_sign, methods=["GET", "POST"]),
        Route("/health", server.handle_health, methods=["GET"]),
        Route("/metrics", metrics_endpoint, methods=["GET"]),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        MetricsMiddleware,
        exclude_paths=["/health", "/metrics"],
    )

    return app


def run(settings: Settings | None = None, host: str | None = None, port: int | None = None) -> None:
    """Configure logging/tracing and serve the app with uvicorn."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_json)
    if settings.tracing_enabled or settings.tracing_otlp_endpoint or settings.tracing_console:
        setup_tracing(
            service_name=settings.tracing_service_name or "osspresign",
            otlp_endpoint=settings.tracing_otlp_endpoint,
            enable_console=settings.tracing_console,
        )
    app = create_app(settings)

    uvicorn.run(
        app,
        host=host or settings.service_host,
        port=port or settings.service_port,
        log_level=settings.log_level.lower(),
    )


def main() -> None:
    """Entry point for the signing service."""
    run()


if __name__ == "__main__":
    main()
