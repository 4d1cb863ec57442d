import unittest

import cv2
import numpy as np

from customvision_kit.errors import ImageDecodeError
from customvision_kit.preprocess import decode_image, resize_image, strip_alpha


def _encode(image: np.ndarray, ext: str = ".png") -> bytes:
    ok, buf = cv2.imencode(ext, image)
    assert ok
    return buf.tobytes()


class TestResizeImage(unittest.TestCase):
    def test_solid_color_becomes_rgb_buffer(self) -> None:
        bgr = np.zeros((10, 6, 3), dtype=np.uint8)
        bgr[:, :] = (10, 20, 30)
        pixels = resize_image(_encode(bgr), 4)
        self.assertEqual(pixels.dtype, np.float32)
        self.assertEqual(pixels.shape, (4 * 4 * 3,))
        self.assertTrue(np.array_equal(pixels.reshape(-1, 3), np.tile([30.0, 20.0, 10.0], (16, 1))))

    def test_aspect_ratio_not_preserved(self) -> None:
        bgr = np.full((5, 40, 3), 128, dtype=np.uint8)
        pixels = resize_image(_encode(bgr), 7)
        self.assertEqual(pixels.shape[0], 7 * 7 * 3)

    def test_alpha_is_stripped(self) -> None:
        bgra = np.zeros((4, 4, 4), dtype=np.uint8)
        bgra[:, :] = (1, 2, 3, 77)
        pixels = resize_image(_encode(bgra), 2)
        self.assertEqual(pixels.shape[0] % 3, 0)
        self.assertNotIn(77.0, pixels.tolist())
        self.assertEqual(pixels[:3].tolist(), [3.0, 2.0, 1.0])

    def test_alpha_array_is_stripped(self) -> None:
        bgra = np.zeros((4, 4, 4), dtype=np.uint8)
        bgra[:, :] = (1, 2, 3, 77)
        pixels = resize_image(bgra, 2)
        self.assertEqual(pixels.tolist(), [3.0, 2.0, 1.0] * 4)

    def test_grayscale_input(self) -> None:
        gray = np.full((3, 3), 200, dtype=np.uint8)
        pixels = resize_image(_encode(gray), 3)
        self.assertEqual(pixels.tolist(), [200.0] * 27)

    def test_accepts_decoded_array(self) -> None:
        bgr = np.zeros((8, 8, 3), dtype=np.uint8)
        bgr[:, :, 2] = 255
        pixels = resize_image(bgr, 2)
        self.assertEqual(pixels[:3].tolist(), [255.0, 0.0, 0.0])

    def test_exif_orientation_is_applied(self) -> None:
        # Left half red, right half blue; orientation 6 rotates 90 degrees clockwise,
        # so the left half ends up on top.
        bgr = np.zeros((16, 32, 3), dtype=np.uint8)
        bgr[:, :16] = (0, 0, 255)
        bgr[:, 16:] = (255, 0, 0)
        ok, buf = cv2.imencode(".jpg", bgr, [int(cv2.IMWRITE_JPEG_QUALITY), 100])
        self.assertTrue(ok)
        jpeg = buf.tobytes()

        tiff = (
            b"II*\x00\x08\x00\x00\x00"  # little-endian header, IFD at offset 8
            b"\x01\x00"  # one entry
            b"\x12\x01\x03\x00\x01\x00\x00\x00\x06\x00\x00\x00"  # Orientation (SHORT) = 6
            b"\x00\x00\x00\x00"  # no next IFD
        )
        payload = b"Exif\x00\x00" + tiff
        app1 = b"\xff\xe1" + (len(payload) + 2).to_bytes(2, "big") + payload
        rotated = jpeg[:2] + app1 + jpeg[2:]

        pixels = resize_image(rotated, 4).reshape(4, 4, 3)
        top, bottom = pixels[0], pixels[3]
        self.assertTrue(np.all(top[:, 0] > 200) and np.all(top[:, 2] < 60))
        self.assertTrue(np.all(bottom[:, 2] > 200) and np.all(bottom[:, 0] < 60))

    def test_sixteen_bit_png_is_downsampled(self) -> None:
        ok, buf = cv2.imencode(".png", np.full((4, 4, 3), 40000, dtype=np.uint16))
        self.assertTrue(ok)
        pixels = resize_image(buf.tobytes(), 2)
        self.assertEqual(pixels.shape, (2 * 2 * 3,))
        self.assertTrue(np.all(np.abs(pixels - 156.0) <= 1.0))

    def test_sixteen_bit_array_is_downsampled(self) -> None:
        pixels = resize_image(np.full((4, 4, 3), 40000, dtype=np.uint16), 2)
        self.assertEqual(pixels.tolist(), [156.0] * 12)

    def test_float_array_rejected(self) -> None:
        with self.assertRaises(ImageDecodeError):
            resize_image(np.zeros((4, 4, 3), dtype=np.float32), 2)

    def test_garbage_bytes_raise(self) -> None:
        with self.assertRaises(ImageDecodeError):
            resize_image(b"definitely not an image", 4)

    def test_empty_bytes_raise(self) -> None:
        with self.assertRaises(ImageDecodeError):
            decode_image(b"")

    def test_invalid_target_size(self) -> None:
        with self.assertRaises(ValueError):
            resize_image(np.zeros((2, 2, 3), dtype=np.uint8), 0)


class TestStripAlpha(unittest.TestCase):
    def test_drops_every_fourth_sample(self) -> None:
        rgba = np.array([1, 2, 3, 255, 4, 5, 6, 255], dtype=np.uint8)
        self.assertEqual(strip_alpha(rgba).tolist(), [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])

    def test_rejects_partial_pixel(self) -> None:
        with self.assertRaises(ImageDecodeError):
            strip_alpha(np.zeros(7, dtype=np.uint8))


if __name__ == "__main__":
    unittest.main()
