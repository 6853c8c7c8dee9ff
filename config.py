"""
Central configuration for the crate-build orchestrator.
The workspace root is whatever directory the build is invoked from (or
``--root``); projects are discovered from its Cargo.toml, never hardcoded.
"""
import os
import platform
from pathlib import Path

from errors import ConfigurationError

# ── Toolchain ─────────────────────────────────────────────────────────────────
# The cargo executable used for every build / test / clean / doc invocation.
# Override with the CRATE_BUILD_CARGO environment variable.
CARGO = os.environ.get("CRATE_BUILD_CARGO", "cargo")

# ── Profiles ──────────────────────────────────────────────────────────────────
#   "debug"   – unoptimised build   (target/debug)
#   "release" – cargo --release     (target/release)
PROFILES = ("debug", "release")
DEFAULT_PROFILE = os.environ.get("CRATE_BUILD_PROFILE", "debug")

# ── Logging ───────────────────────────────────────────────────────────────────
DEBUG = os.environ.get("CRATE_BUILD_DEBUG", "").lower() in ("1", "true", "yes")

# ── Project layout ────────────────────────────────────────────────────────────
MANIFEST_FILE = "Cargo.toml"
SOURCE_DIR    = "src"
BIN_DIR       = "bin"
SOURCE_EXT    = "rs"
MAIN_FILE     = f"main.{SOURCE_EXT}"
LIB_FILE      = f"lib.{SOURCE_EXT}"
TARGET_DIR    = "target"

# ── Packaging ─────────────────────────────────────────────────────────────────
DIST_DIR = "dist"
REVISION_FILE = "git-revision"

# Host (system, machine) → Rust target triple used in release archive names.
_TRIPLES = {
    ("Linux",  "x86_64"):  "x86_64-unknown-linux-gnu",
    ("Linux",  "aarch64"): "aarch64-unknown-linux-gnu",
    ("Darwin", "x86_64"):  "x86_64-apple-darwin",
    ("Darwin", "arm64"):   "aarch64-apple-darwin",
}


def target_triple() -> str:
    """
    Return the target triple for the release archive name.

    ``CRATE_BUILD_TARGET_TRIPLE`` wins; otherwise the host platform is
    mapped through ``_TRIPLES``.  Unknown hosts raise ConfigurationError.
    """
    override = os.environ.get("CRATE_BUILD_TARGET_TRIPLE")
    if override:
        return override
    host = (platform.system(), platform.machine())
    try:
        return _TRIPLES[host]
    except KeyError:
        raise ConfigurationError(
            f"Unknown target triple for platform {host[0]}/{host[1]}; "
            "set CRATE_BUILD_TARGET_TRIPLE"
        ) from None


def validate_profile(profile: str) -> str:
    if profile not in PROFILES:
        raise ConfigurationError(
            f"Unknown profile '{profile}' (expected one of {', '.join(PROFILES)})"
        )
    return profile


def default_root() -> Path:
    """The invocation root: the current working directory, canonicalised."""
    return Path.cwd().resolve()
