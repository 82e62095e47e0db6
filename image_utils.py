import base64
import io
import logging
import mimetypes
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

LOGGER = logging.getLogger("quizwiz")

MAX_DIM_PX = 4000
PDF_MIME = "application/pdf"
IMAGE_MIMES = ("image/png", "image/jpeg", "image/webp", "image/gif")


@dataclass(frozen=True)
class PreparedUpload:
    data: bytes
    mime_type: str
    name: str = ""

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME

    def to_data_url(self) -> str:
        return to_data_url(self.data, self.mime_type)


def _human_mb(num_bytes: int) -> str:
    return f"{(num_bytes / (1024 * 1024)):.1f}MB"


def guess_mime_type(name: str, declared: Optional[str] = None) -> str:
    declared = (declared or "").strip().lower()
    if declared:
        return "image/jpeg" if declared == "image/jpg" else declared
    guessed, _ = mimetypes.guess_type(name or "")
    return guessed or "application/octet-stream"


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def _flatten_onto_white(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA", "P"):
        rgba = img.convert("RGBA")
        if rgba.getchannel("A").getextrema()[0] < 255:
            white_bg = Image.new("RGB", rgba.size, (255, 255, 255))
            white_bg.paste(rgba, mask=rgba.getchannel("A"))
            return white_bg
    return img.convert("RGB")


def _jpeg_bytes(img: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    _flatten_onto_white(img).save(buf, format="JPEG", quality=int(quality), optimize=True)
    return buf.getvalue()


def shrink_image_to_limit(file_bytes: bytes, max_mb: float) -> bytes:
    """Re-encode a worksheet photo as JPEG until it fits under `max_mb`.

    Walks a quality ladder first, then downscales in 10% steps. Raises
    ValueError with a user-facing message when the image is unreadable,
    oversized in pixels, or cannot be brought under the limit.
    """
    max_bytes = int(max_mb * 1024 * 1024)
    try:
        img = Image.open(io.BytesIO(file_bytes))
        img.load()
    except (UnidentifiedImageError, OSError):
        raise ValueError("Invalid image file. Please upload a valid PNG/JPG.")

    w, h = img.size
    if w > MAX_DIM_PX or h > MAX_DIM_PX:
        raise ValueError(f"Image dimensions too large ({w}x{h}). Max allowed is {MAX_DIM_PX}x{MAX_DIM_PX}px.")

    for q in (85, 75, 65, 55):
        out = _jpeg_bytes(img, q)
        if len(out) <= max_bytes:
            LOGGER.warning(
                "Worksheet image recompressed",
                extra={"ctx": {"component": "image", "from": _human_mb(len(file_bytes)), "to": _human_mb(len(out)), "quality": q}},
            )
            return out

    scale = 0.9
    for _ in range(5):
        smaller = img.resize((max(1, int(w * scale)), max(1, int(h * scale))))
        out = _jpeg_bytes(smaller, 60)
        if len(out) <= max_bytes:
            LOGGER.warning(
                "Worksheet image downscaled",
                extra={"ctx": {"component": "image", "from": _human_mb(len(file_bytes)), "to": _human_mb(len(out)), "scale": round(scale, 2)}},
            )
            return out
        scale *= 0.9

    raise ValueError(f"Image too large ({_human_mb(len(file_bytes))}) and could not be compressed under {max_mb:.0f}MB.")


def prepare_upload(file_bytes: bytes, name: str, mime_type: Optional[str], max_image_mb: float) -> PreparedUpload:
    """Validate an uploaded worksheet and make images fit the transport limit."""
    if not file_bytes:
        raise ValueError("Please upload a worksheet image or PDF.")
    mime = guess_mime_type(name, mime_type)
    if mime == PDF_MIME:
        return PreparedUpload(data=file_bytes, mime_type=mime, name=name)
    if not mime.startswith("image/"):
        raise ValueError("Unsupported file type. Please upload an image (PNG/JPG) or a PDF.")
    if len(file_bytes) <= int(max_image_mb * 1024 * 1024):
        return PreparedUpload(data=file_bytes, mime_type=mime, name=name)
    return PreparedUpload(data=shrink_image_to_limit(file_bytes, max_image_mb), mime_type="image/jpeg", name=name)
