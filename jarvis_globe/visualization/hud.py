"""
Holographic HUD overlay: wireframe globe, status line, voice indicator and
the draggable sector panel, drawn with OpenCV on the mirrored camera frame.
"""

import time
import logging
import cv2
import numpy as np

logger = logging.getLogger(__name__)

SCANNING_LABEL = "SCANNING..."


def rotation_matrix(rotation_x: float, rotation_y: float) -> np.ndarray:
    """Rotation about Y (heading) followed by X (tilt)."""
    cy, sy = np.cos(rotation_y), np.sin(rotation_y)
    cx, sx = np.cos(rotation_x), np.sin(rotation_x)
    rot_y = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    rot_x = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    return rot_x @ rot_y


def _sphere_point(lat: np.ndarray, lon: np.ndarray) -> np.ndarray:
    return np.stack([
        np.cos(lat) * np.sin(lon),
        np.sin(lat),
        np.cos(lat) * np.cos(lon),
    ], axis=-1)


def build_wireframe(meridians: int = 12, parallels: int = 5, resolution: int = 48) -> list:
    """Unit-sphere polylines: meridians pole to pole, parallels around."""
    lines = []
    lat = np.linspace(-np.pi / 2, np.pi / 2, resolution)
    for lon in np.linspace(0.0, 2 * np.pi, meridians, endpoint=False):
        lines.append(_sphere_point(lat, np.full_like(lat, lon)))
    lon = np.linspace(0.0, 2 * np.pi, resolution)
    for lat_value in np.linspace(-np.pi / 3, np.pi / 3, parallels):
        lines.append(_sphere_point(np.full_like(lon, lat_value), lon))
    return lines


class Hud:
    """Renders the HUD for one frame."""

    def __init__(self, config: dict):
        self._window_name = config.get("window_name", "JARVIS")
        self._mirror = config.get("mirror_display", True)
        self._backdrop_dim = config.get("backdrop_dim", 0.5)
        self._color = tuple(config.get("theme_color", [255, 255, 0]))  # BGR cyan
        self._globe_center_x = config.get("globe_center_x", 0.35)
        self._globe_radius = config.get("globe_radius", 0.22)
        self._panel_size = tuple(config.get("panel_size", [256, 110]))
        self._wireframe = build_wireframe(
            meridians=config.get("globe_meridians", 12),
            parallels=config.get("globe_parallels", 5),
        )

    @property
    def window_name(self) -> str:
        return self._window_name

    def render(self, frame: np.ndarray, view: dict, loading: bool = False) -> np.ndarray:
        """Render the full overlay.

        Args:
            frame: BGR camera frame in raw (unmirrored) orientation, with any
                landmark drawing already applied
            view: dict from OrientationController.build_view()
            loading: draw the boot overlay instead of the HUD

        Returns:
            New BGR frame ready for display
        """
        canvas = cv2.flip(frame, 1) if self._mirror else frame.copy()
        canvas = cv2.convertScaleAbs(canvas, alpha=self._backdrop_dim, beta=0)
        h, w = canvas.shape[:2]

        if loading:
            self._draw_booting(canvas, w, h)
            return canvas

        state = view.get("state")
        if state is not None:
            self._draw_globe(canvas, w, h, state)
        self._draw_status(canvas, view)
        self._draw_title(canvas, w)
        self._draw_panel(canvas, w, h, view)
        return canvas

    def _draw_globe(self, canvas, w, h, state):
        center = np.array([w * self._globe_center_x, h * 0.5])
        radius = min(w, h) * self._globe_radius * state.scale
        matrix = rotation_matrix(state.rotation_x, state.rotation_y)

        for line in self._wireframe:
            points = line @ matrix.T
            visible = points[:, 2] > 0.0
            pixels = np.empty((len(points), 2), dtype=np.int32)
            pixels[:, 0] = (center[0] + radius * points[:, 0]).astype(np.int32)
            pixels[:, 1] = (center[1] - radius * points[:, 1]).astype(np.int32)
            for i in range(len(points) - 1):
                if visible[i] and visible[i + 1]:
                    cv2.line(canvas, tuple(pixels[i]), tuple(pixels[i + 1]), self._color, 1, cv2.LINE_AA)

        cv2.circle(canvas, (int(center[0]), int(center[1])), int(radius), self._color, 2, cv2.LINE_AA)

    def _draw_status(self, canvas, view):
        cv2.putText(canvas, "SYSTEM_READY", (30, 40),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.7, self._color, 2)
        cv2.line(canvas, (30, 50), (290, 50), self._color, 1)
        cv2.putText(canvas, view.get("status", ""), (30, 75),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, self._color, 1)

        listening = view.get("voice_listening", False)
        dot_color = (0, 0, 255) if listening else (128, 128, 128)
        cv2.circle(canvas, (36, 97), 5, dot_color, -1)
        cv2.putText(canvas, f"VOICE: {'ON' if listening else 'OFF'}", (48, 102),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, self._color, 1)
        if view.get("voice_override"):
            cv2.putText(canvas, "VOICE LOCK", (150, 102),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 255), 1)

    def _draw_title(self, canvas, w):
        title = "JARVIS"
        (tw, _), _ = cv2.getTextSize(title, cv2.FONT_HERSHEY_DUPLEX, 2.0, 3)
        cv2.putText(canvas, title, (w - tw - 30, 70),
                    cv2.FONT_HERSHEY_DUPLEX, 2.0, self._color, 3)
        clock = time.strftime("%H:%M:%S")
        (cw, _), _ = cv2.getTextSize(clock, cv2.FONT_HERSHEY_SIMPLEX, 0.8, 2)
        cv2.putText(canvas, clock, (w - cw - 30, 105),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.8, self._color, 2)

    def _draw_panel(self, canvas, w, h, view):
        panel = view.get("panel")
        if panel is None:
            return
        pw, ph = self._panel_size
        x = int(np.clip(panel.x, 0, max(w - pw, 0)))
        y = int(np.clip(panel.y, 0, max(h - ph, 0)))

        region = canvas[y:y + ph, x:x + pw]
        region[:] = (region * 0.2).astype(np.uint8)
        cv2.rectangle(canvas, (x, y), (x + pw, y + ph), self._color, 1)

        cv2.putText(canvas, "SECTOR", (x + 12, y + 24),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.55, self._color, 2)
        cv2.putText(canvas, "LIVE", (x + pw - 52, y + 24),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.45, self._color, 1)
        cv2.line(canvas, (x + 8, y + 34), (x + pw - 8, y + 34), self._color, 1)

        sector = view.get("sector")
        label = sector.value if sector is not None else SCANNING_LABEL
        cv2.putText(canvas, label, (x + 12, y + 70),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.9, (255, 255, 255), 2)
        cv2.putText(canvas, "PINCH TO MOVE", (x + 12, y + 95),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.4, (160, 160, 160), 1)

    def _draw_booting(self, canvas, w, h):
        canvas[:] = 0
        text = "BOOTING..."
        (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 1.2, 3)
        cv2.putText(canvas, text, ((w - tw) // 2, (h + th) // 2),
                    cv2.FONT_HERSHEY_SIMPLEX, 1.2, self._color, 3)
