# Overview: WSGI entry point; also the FLASK_APP target for the CLI commands.

from app import create_app

app = create_app()

if __name__ == "__main__":
    app.run(port=5001, debug=app.config.get("DEBUG", False))
