from fastapi import UploadFile

from ocr_relay.relay import UploadedFile

CHUNK_SIZE = 64 * 1024


class IntakeError(Exception):
    def __init__(self, status_code: int, error: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message


async def read_upload(file: UploadFile | None, max_bytes: int) -> UploadedFile | None:
    if file is None:
        return None

    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise IntakeError(400, "Invalid file type", "Only image files are allowed.")

    # reads at most max_bytes + 1 bytes
    chunks: list[bytes] = []
    received = 0
    while received <= max_bytes:
        chunk = await file.read(min(CHUNK_SIZE, max_bytes + 1 - received))
        if not chunk:
            break
        chunks.append(chunk)
        received += len(chunk)

    if received > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise IntakeError(400, "File too large", f"The file is too large. The limit is {limit_mb:g}MB.")

    return UploadedFile(
        content=b"".join(chunks),
        filename=file.filename or "upload",
        mime_type=content_type,
    )
