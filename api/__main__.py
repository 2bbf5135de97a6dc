"""Development server: python -m api (APP_ENV picks the config)."""
import os

from . import create_app

app = create_app()

if __name__ == "__main__":
    app.run(
        host=os.getenv("FLASK_RUN_HOST", "127.0.0.1"),
        port=int(os.getenv("FLASK_RUN_PORT", "8000")),
        debug=app.config.get("DEBUG", False),
    )
