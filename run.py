#!/usr/bin/env python3
"""
Simple launcher script for the SubMux web UI
Usage: python run.py
"""

import os
import shutil
import subprocess
import sys
from pathlib import Path


def main():
    # Get the directory where this script is located
    script_dir = Path(__file__).resolve().parent
    app_file = script_dir / "submux" / "main.py"

    if not app_file.exists():
        print("❌ Error: submux/main.py file not found!")
        sys.exit(1)

    # Check if streamlit is installed
    try:
        import streamlit  # noqa: F401

        print("✅ Streamlit found!")
    except ImportError:
        print("❌ Streamlit is not installed!")
        print("   Install it with: pip install streamlit")
        sys.exit(1)

    # Check if MKVToolNix is installed
    mkvmerge = os.getenv("MKVMERGE_PATH", "mkvmerge")
    if shutil.which(mkvmerge) is None:
        print("❌ mkvmerge is not installed or not in PATH!")
        print("   Install MKVToolNix: https://mkvtoolnix.download/")
        sys.exit(1)
    print("✅ mkvmerge found!")

    # Load port from .env if available
    env_file = script_dir / ".env"
    port = "8503"  # default port

    if env_file.exists():
        print(f"✅ .env file found: {env_file}")
        with open(env_file, "r") as f:
            for line in f:
                if line.strip().startswith("STREAMLIT_PORT="):
                    port = line.split("=", 1)[1].strip()
                    break
    else:
        print("⚠️  .env file not found, using default values")

    print(f"🚀 Starting SubMux on port {port}")
    print(f"🌐 Open your browser at: http://localhost:{port}")
    print("   Press Ctrl+C to stop the application")

    # submux/main.py imports the package by name
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in [str(script_dir), env.get("PYTHONPATH", "")] if p
    )

    # Launch streamlit
    try:
        subprocess.run(
            [
                sys.executable,
                "-m",
                "streamlit",
                "run",
                str(app_file),
                "--server.port",
                port,
                "--server.headless",
                "true",
                "--browser.gatherUsageStats",
                "false",
            ],
            env=env,
        )
    except KeyboardInterrupt:
        print("\n👋 Application stopped")


if __name__ == "__main__":
    main()
