"""Version information for the h2harness package."""

from __future__ import annotations

__all__: list[str] = ["__version__", "__version_info__"]

__version_info__: tuple[int, int, int] = (0, 3, 0)
__version__: str = ".".join(map(str, __version_info__))
