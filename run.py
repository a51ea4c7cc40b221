"""Local development entry point.

Usage:
    python run.py

Serves the REST API and the Socket.IO board channel from one process.
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before anything else

from taskboard import create_app
from taskboard.extensions import socketio

app = create_app()

if __name__ == "__main__":
    socketio.run(app, debug=True, host="0.0.0.0", port=5001, allow_unsafe_werkzeug=True)
