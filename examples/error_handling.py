"""Error handling: catching UnsupportedScheme, MalformedPath, NoMatchingCredential, etc.

Demonstrates the normalized error hierarchy and how to handle errors
programmatically using structured attributes. No network access needed:
every failure below happens before a client contacts its backend.
"""

from __future__ import annotations

import tempfile

from model_localizer import (
    FileSystemManager,
    LocalizerError,
    MalformedPath,
    NoMatchingCredential,
    UnsupportedScheme,
    localize,
)

CREDENTIALS = {
    "s3": {"s3://models/production": {"key_id": "AKIAEXAMPLE", "secret_key": "example"}},
}

if __name__ == "__main__":
    manager = FileSystemManager()

    # --- UnsupportedScheme ---
    try:
        manager.get_file_system("ftp://models/resnet", CREDENTIALS)
    except UnsupportedScheme as exc:
        print(f"UnsupportedScheme: {exc}")

    # --- MalformedPath ---
    try:
        manager.get_file_system("as://account-without-container", {"as": {"as://": {}}})
    except MalformedPath as exc:
        print(f"MalformedPath: {exc}")
        print(f"  path={exc.path}, backend={exc.backend}")

    # --- NoMatchingCredential ---
    try:
        manager.get_file_system("s3://models/staging/resnet", CREDENTIALS)
    except NoMatchingCredential as exc:
        print(f"NoMatchingCredential: {exc}")

    # --- Catch-all ---
    with tempfile.TemporaryDirectory() as tmp:
        try:
            localize("gs://", tmp, credentials={})
        except LocalizerError as exc:
            print(f"LocalizerError ({type(exc).__name__}): {exc}")

    print("\nDone!")
