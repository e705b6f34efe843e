# src/drive_auth/utils/headless_detection.py

import os
import sys
import logging
from typing import List, Mapping, Optional

lib_logger = logging.getLogger("drive_auth")

CI_VARS = (
    "CI",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "JENKINS_URL",
    "CIRCLECI",
    "TRAVIS",
    "BUILDKITE",
    "TF_BUILD",
)


def headless_indicators(env: Optional[Mapping[str, str]] = None) -> List[str]:
    """
    Collect the reasons the current environment cannot show a browser.

    An empty list means a GUI is probably available and the authorization
    URL may be opened automatically.
    """
    env = os.environ if env is None else env
    indicators = []

    # DISPLAY is X11-only; macOS and Windows never set it
    if os.name != "nt" and sys.platform != "darwin":
        if not env.get("DISPLAY", "").strip() and not env.get("WAYLAND_DISPLAY"):
            indicators.append("No DISPLAY variable (Linux headless)")

    if env.get("SSH_CONNECTION") or env.get("SSH_CLIENT") or env.get("SSH_TTY"):
        indicators.append("SSH connection detected")

    for var in CI_VARS:
        if env.get(var):
            indicators.append(f"CI environment detected ({var})")
            break

    if os.path.exists("/.dockerenv") or os.path.exists("/run/.containerenv"):
        indicators.append("Container environment detected")

    return indicators


def is_headless_environment(env: Optional[Mapping[str, str]] = None) -> bool:
    """Detects if the current environment is headless (no GUI available)."""
    indicators = headless_indicators(env)
    if indicators:
        lib_logger.debug(f"Headless environment detected: {'; '.join(indicators)}")
        return True
    lib_logger.debug("GUI environment detected, browser auto-open will be attempted")
    return False
