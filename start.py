#!/usr/bin/env python3
"""
Start script for Schrijfcoach
Creates the virtual environment if needed and starts the API server
"""
import subprocess
import sys
import os
from pathlib import Path


def venv_executable(venv_path: Path, name: str) -> Path:
    if sys.platform == "win32":
        return venv_path / "Scripts" / f"{name}.exe"
    return venv_path / "bin" / name


def check_and_install_dependencies() -> Path:
    """Check and install dependencies if needed, returning the Python to run with"""
    venv_path = Path(".venv")
    if not venv_path.exists() and "VIRTUAL_ENV" not in os.environ:
        print("🐍 Creating Python virtual environment...")
        subprocess.run([sys.executable, "-m", "venv", ".venv"], check=True)
        pip = venv_executable(venv_path, "pip")
        print("📦 Installing Python dependencies...")
        subprocess.run([str(pip), "install", "--upgrade", "pip", "setuptools", "wheel"], check=True)
        subprocess.run([str(pip), "install", "-e", "."], check=True)

    python = venv_executable(venv_path, "python") if venv_path.exists() else Path(sys.executable)

    # Check if the package and its dependencies are installed
    try:
        subprocess.run([str(python), "-c", "import fastapi, schrijfcoach"], check=True, capture_output=True)
    except subprocess.CalledProcessError:
        print("📦 Installing missing Python dependencies...")
        subprocess.run([str(python), "-m", "pip", "install", "-e", "."], check=True)

    if not os.environ.get("GEMINI_API_KEY") and not Path(".env").exists():
        print("⚠️  GEMINI_API_KEY is not set; AI routes will return a configuration error")

    return python


def start_server(python: Path):
    """Start the backend server"""
    print("🚀 Starting Schrijfcoach...")
    print("")
    print("   Backend:  http://localhost:8000")
    print("   API docs: http://localhost:8000/docs")
    print("")
    print("Press Ctrl+C to stop the server")
    print("")

    backend = subprocess.Popen(
        [str(python), "-m", "uvicorn", "schrijfcoach.main:app", "--reload", "--host", "0.0.0.0", "--port", "8000"],
        cwd=Path.cwd()
    )

    try:
        backend.wait()
    except KeyboardInterrupt:
        print("\n\n🛑 Stopping server...")
        backend.terminate()
        backend.wait()
        print("✅ Server stopped")


if __name__ == "__main__":
    try:
        start_server(check_and_install_dependencies())
    except KeyboardInterrupt:
        print("\n\n✅ Exiting...")
        sys.exit(0)
    except Exception as e:
        print(f"\n❌ Error: {e}")
        sys.exit(1)
