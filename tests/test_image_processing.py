import io
import unittest

from PIL import Image

from image_utils import guess_mime_type, prepare_upload, shrink_image_to_limit


def _png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class ImageProcessingTests(unittest.TestCase):
    def test_transparent_png_composites_on_white_when_shrunk(self) -> None:
        img = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
        img.putpixel((5, 5), (255, 0, 0, 255))

        out_bytes = shrink_image_to_limit(_png_bytes(img), max_mb=1)

        out_img = Image.open(io.BytesIO(out_bytes))
        self.assertEqual(out_img.format, "JPEG")
        self.assertEqual(out_img.mode, "RGB")
        pixel = out_img.getpixel((0, 0))
        self.assertTrue(all(channel >= 250 for channel in pixel), msg=f"Pixel was not near white: {pixel}")

    def test_small_image_passes_through(self) -> None:
        data = _png_bytes(Image.new("RGB", (20, 20), (10, 20, 30)))
        upload = prepare_upload(data, "sheet.png", "image/png", max_image_mb=5)
        self.assertEqual(upload.data, data)
        self.assertEqual(upload.mime_type, "image/png")
        self.assertFalse(upload.is_pdf)
        self.assertTrue(upload.to_data_url().startswith("data:image/png;base64,"))

    def test_oversized_image_is_recompressed_to_jpeg(self) -> None:
        noisy = Image.effect_noise((600, 600), 120).convert("RGB")
        data = _png_bytes(noisy)
        limit_mb = 0.2
        self.assertGreater(len(data), limit_mb * 1024 * 1024)

        upload = prepare_upload(data, "sheet.png", "image/png", max_image_mb=limit_mb)
        self.assertEqual(upload.mime_type, "image/jpeg")
        self.assertLessEqual(len(upload.data), limit_mb * 1024 * 1024)

    def test_unreadable_image_raises(self) -> None:
        with self.assertRaises(ValueError):
            shrink_image_to_limit(b"not an image", max_mb=1)

    def test_mime_type_guessing(self) -> None:
        self.assertEqual(guess_mime_type("sheet.pdf"), "application/pdf")
        self.assertEqual(guess_mime_type("photo.JPG", "image/jpg"), "image/jpeg")
        self.assertEqual(guess_mime_type("photo.png", None), "image/png")


if __name__ == "__main__":
    unittest.main()
