"""
devbins - provisioning of the external binaries an application needs at runtime.

Fetches, verifies and installs yt-dlp, deno and ffmpeg for the running
platform, with retries, release-asset resolution and post-install
validation.
"""

try:
    from importlib.metadata import version

    __version__ = version("devbins")
except Exception:
    __version__ = "0.1.0"
