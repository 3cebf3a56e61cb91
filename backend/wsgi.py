# backend/wsgi.py
from medtrade import create_app

app = create_app()
