#!/usr/bin/env python3
"""
Local launcher for the KMRL induction engine.
Runs uvicorn with reload against the in-memory store seeded with the demo fleet,
unless .env or the shell says otherwise.
"""

import os
import sys
import subprocess
from pathlib import Path
from dotenv import load_dotenv

ROOT = Path(__file__).parent

DEV_DEFAULTS = {
    "STORAGE_BACKEND": "memory",
    "SEED_DEMO_FLEET": "true",
    "LOG_LEVEL": "DEBUG",
    "DEBUG": "true",
    "HOST": "127.0.0.1",
    "PORT": "8000",
}


def apply_dev_defaults() -> None:
    # .env and the shell take precedence
    load_dotenv(ROOT / ".env")
    for key, value in DEV_DEFAULTS.items():
        os.environ.setdefault(key, value)


def main() -> int:
    apply_dev_defaults()

    backend = os.environ["STORAGE_BACKEND"]
    if backend == "mongo" and not os.environ.get("MONGODB_URL"):
        print("STORAGE_BACKEND=mongo but MONGODB_URL is not set; using the default localhost URL")

    print(f"KMRL induction engine (dev) on http://{os.environ['HOST']}:{os.environ['PORT']}")
    print(f"  storage: {backend}, demo fleet: {os.environ['SEED_DEMO_FLEET']}")
    print(f"  api key: {'required' if os.environ.get('API_KEY') else 'not required'}")

    command = [
        sys.executable, "-m", "uvicorn", "kmrl_induction.main:app",
        "--host", os.environ["HOST"],
        "--port", os.environ["PORT"],
        "--reload",
        "--reload-dir", str(ROOT / "kmrl_induction"),
    ]
    try:
        subprocess.run(command, cwd=ROOT, check=True)
    except KeyboardInterrupt:
        print("\nStopped")
    except subprocess.CalledProcessError as e:
        print(f"uvicorn exited with status {e.returncode}")
        return e.returncode
    return 0


if __name__ == "__main__":
    sys.exit(main())
