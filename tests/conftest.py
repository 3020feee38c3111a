import struct
import zlib

import pytest

from chartjs_mcp.render import ChartRenderError


def make_png(width: int, height: int) -> bytes:
    """Build a minimal white RGB PNG."""

    def chunk(kind: bytes, payload: bytes) -> bytes:
        return (
            struct.pack(">I", len(payload))
            + kind
            + payload
            + struct.pack(">I", zlib.crc32(kind + payload) & 0xFFFFFFFF)
        )

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    rows = b"".join(b"\x00" + b"\xff" * (width * 3) for _ in range(height))
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(rows))
        + chunk(b"IEND", b"")
    )


def png_size(data: bytes) -> tuple[int, int]:
    """Read (width, height) from a PNG's IHDR chunk."""
    assert data[:8] == b"\x89PNG\r\n\x1a\n"
    return struct.unpack(">II", data[16:24])


class FakeChartEngine:
    """Chart engine that returns a blank PNG of the requested size."""

    def __init__(self):
        self.calls = []

    async def render_png(self, config, width, height):
        self.calls.append((config, width, height))
        return make_png(width, height)


class FailingChartEngine:
    def __init__(self, message="Cannot read properties of undefined (reading 'x')"):
        self.message = message

    async def render_png(self, config, width, height):
        raise ChartRenderError(self.message)


@pytest.fixture
def fake_engine():
    return FakeChartEngine()


@pytest.fixture
def bar_config():
    return {
        "type": "bar",
        "data": {
            "labels": ["Q1", "Q2"],
            "datasets": [{"label": "Sales", "data": [50, 75]}],
        },
    }
