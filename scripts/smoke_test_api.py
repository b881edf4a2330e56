#!/usr/bin/env python3
"""
Smoke test for a running Music Analysis API.

Checks:
    1. GET  /api/health          -> 200 with status "OK"
    2. POST /api/analyze (audio) -> 200 envelope (only if a file is given)
    3. POST /api/analyze (JSON)  -> 400 "No audio file provided"
    4. GET  /api/analyze         -> 405 "Method not allowed"

Usage:
    python3 scripts/smoke_test_api.py [--base-url http://localhost:3000] [path/to/audio.mp3]

Exit codes:
    0 - all checks passed
    1 - one or more checks failed
"""

from __future__ import annotations

import argparse
import json
import mimetypes
import sys
from pathlib import Path

import httpx

DEFAULT_BASE_URL = "http://localhost:3000"
TIMEOUT_SECS = 60.0


def _check(label: str, ok: bool, payload: object) -> bool:
    mark = "✓" if ok else "✗"
    print(f"{mark}  {label}")
    print(json.dumps(payload, indent=2) if isinstance(payload, (dict, list)) else f"   {payload}")
    return ok


def _json(resp: httpx.Response) -> object:
    try:
        return resp.json()
    except ValueError:
        return resp.text


def run(base_url: str, audio_path: Path | None) -> bool:
    results: list[bool] = []
    with httpx.Client(base_url=base_url, timeout=TIMEOUT_SECS) as client:
        resp = client.get("/api/health")
        body = _json(resp)
        results.append(_check(
            "health",
            resp.status_code == 200 and isinstance(body, dict) and body.get("status") == "OK",
            body,
        ))

        if audio_path is not None:
            if not audio_path.exists():
                results.append(_check("analyze upload", False, f"{audio_path} not found"))
            else:
                mime = mimetypes.guess_type(audio_path.name)[0] or "audio/mpeg"
                with audio_path.open("rb") as fh:
                    resp = client.post("/api/analyze", files={"audio": (audio_path.name, fh, mime)})
                body = _json(resp)
                results.append(_check(
                    "analyze upload",
                    resp.status_code == 200 and isinstance(body, dict) and body.get("success") is True,
                    body,
                ))
        else:
            print("-  analyze upload skipped (no audio file given)")

        resp = client.post("/api/analyze", json={})
        body = _json(resp)
        results.append(_check("missing file rejected", resp.status_code == 400, body))

        resp = client.get("/api/analyze")
        body = _json(resp)
        results.append(_check("wrong method rejected", resp.status_code == 405, body))

    return all(results)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Smoke-test the Music Analysis API")
    parser.add_argument("audio", nargs="?", type=Path, help="optional audio file to upload")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    args = parser.parse_args(argv)

    try:
        ok = run(args.base_url, args.audio)
    except httpx.HTTPError as exc:
        print(f"✗  request failed: {exc}")
        return 1

    print("All smoke tests passed." if ok else "Some smoke tests failed.")
    print(f"\n   curl -X POST {args.base_url}/api/analyze -F \"audio=@your-audio-file.mp3\"")
    print(f"   curl {args.base_url}/api/health")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
