"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py init-db
    flask --app run.py seed-admin
    flask --app run.py --debug run

"""

from quotedesk import create_app

# WSGI application object; `flask run` and production servers look for `app`.
app = create_app()

if __name__ == "__main__":
    # Dev only; use `flask run` or a WSGI server otherwise.
    app.run(debug=True)
