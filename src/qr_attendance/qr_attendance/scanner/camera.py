from __future__ import annotations

import logging
from typing import Any, Optional, Union

import cv2

from .client import FrameSource

logger = logging.getLogger(__name__)


class CameraUnavailableError(RuntimeError):
    """Raised when the video device cannot be opened."""


class CameraFrameSource(FrameSource):
    """Frames from a local camera through OpenCV."""

    def __init__(self, device: Union[int, str] = 0):
        self._device = device
        self._capture = cv2.VideoCapture(device)
        if not self._capture.isOpened():
            self._capture.release()
            raise CameraUnavailableError(f"Unable to open camera {device!r}")
        self._released = False
        logger.info(f"Camera {device!r} opened")

    def read(self) -> Optional[Any]:
        if self._released:
            return None
        ok, frame = self._capture.read()
        return frame if ok else None

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._capture.release()
        logger.info(f"Camera {self._device!r} released")
