from __future__ import annotations

import io
from typing import Any, Optional

import cv2
import numpy as np
from PIL import Image
from pyzbar.pyzbar import ZBarSymbol
from pyzbar.pyzbar import decode as pyzbar_decode


def decode_qr(frame: Any) -> Optional[str]:
    """Return the text of the first QR code in a frame, or None.

    Accepts OpenCV BGR/grayscale arrays and PIL images.
    """
    if frame is None:
        return None

    if isinstance(frame, np.ndarray) and frame.ndim == 3:
        if frame.shape[2] == 4:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
        else:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)

    for symbol in pyzbar_decode(frame, symbols=[ZBarSymbol.QRCODE]):
        text = symbol.data.decode("utf-8", errors="replace").strip()
        if text:
            return text
    return None


def decode_image_bytes(data: bytes) -> Optional[str]:
    """Decode a QR code from an uploaded image file (PNG, JPEG, ...)."""
    img = Image.open(io.BytesIO(data)).convert("RGB")
    return decode_qr(img)
