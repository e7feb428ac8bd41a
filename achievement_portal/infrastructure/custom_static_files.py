from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

CERTIFICATE_MIME_TYPES = {
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}


class CertificateStaticFiles(StaticFiles):
    """Serves uploaded certificates with a fixed MIME type per extension."""

    async def get_response(self, path: str, scope: Scope) -> Response:
        response = await super().get_response(path, scope)

        ext = path.rsplit(".", 1)[-1].lower() if "." in path else ""

        if response.status_code == 200 and ext in CERTIFICATE_MIME_TYPES:
            response.headers["Content-Type"] = CERTIFICATE_MIME_TYPES[ext]

        # Uploaded content must never be sniffed into something executable
        response.headers["X-Content-Type-Options"] = "nosniff"

        return response
