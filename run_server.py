"""Flask development server for the plant catalog."""

import os
import sys

if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")

os.environ.setdefault("DATABASE_URL", "sqlite:///database/ephemera.db")

from app import create_app


def main() -> None:
    app = create_app(install_signal_handlers=True)

    # Get port from environment or use default
    port = int(os.environ.get("FLASK_RUN_PORT", 8000))

    print(f"Server starting on http://0.0.0.0:{port}")
    print("Press Ctrl+C to stop\n")

    try:
        app.run(host="0.0.0.0", port=port, debug=False, use_reloader=False, threaded=True)
    except KeyboardInterrupt:
        print("\nServer stopped by user")


if __name__ == "__main__":
    main()
