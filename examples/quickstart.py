"""Quickstart: localize a model file served over HTTP.

Demonstrates:
- Serving a directory with ``http.server`` to stand in for a model host
- Copying a remote file into a temporary directory with LocalizedPath
- The temporary directory being removed on exit
"""

from __future__ import annotations

import functools
import os
import tempfile
import threading
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer

from model_localizer import DownloadConfig, LocalizedPath

if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as served:
        with open(os.path.join(served, "model.onnx"), "wb") as fh:
            fh.write(b"\x08\x07onnx-weights")

        handler = functools.partial(SimpleHTTPRequestHandler, directory=served)
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        url = f"http://127.0.0.1:{server.server_address[1]}/model.onnx"

        # Extra headers and the filter header go out with every download
        config = DownloadConfig(headers={"X-Request-Source": "quickstart"}, filter=["Expires"])

        with LocalizedPath(url, config=config) as local:
            print(f"Localized {local.original_path}")
            print(f"  -> {local.path} ({os.path.getsize(local.path)} bytes)")
            scratch = os.path.dirname(local.path)

        print(f"Temporary directory removed: {not os.path.exists(scratch)}")
        server.shutdown()
        server.server_close()

    print("Done!")
