#!/usr/bin/env python3
"""
Academic Paper Generator service entrypoint.

Runs the FastAPI app under a single uvicorn process. The job queue and its
concurrency limit live in process memory, so the API must not be started
with more than one worker.
"""

import os

PORT = os.environ.get("PORT", os.environ.get("API_PORT", "3000"))
HOST = os.environ.get("API_HOST", "0.0.0.0")

print("=" * 50)
print("Academic Paper Generator API")
print("=" * 50)

cmd = [
    "uvicorn", "coursework.api.main:app",
    "--host", HOST,
    "--port", PORT,
    "--workers", "1",
    "--timeout-graceful-shutdown", "30"
]

print(f"Running: {' '.join(cmd)}")
print("=" * 50)

# Replace this process with the actual command
os.execvp(cmd[0], cmd)
