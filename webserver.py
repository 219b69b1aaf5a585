# webserver.py
from flask import Flask, jsonify
import threading


def create_app(get_open_count):
    app = Flask("")

    @app.route("/")
    def home():
        return "Bot is running!", 200

    @app.route("/tickets")
    def tickets():
        return jsonify({"open": get_open_count()}), 200

    return app


def start(get_open_count, port: int = 8080):
    app = create_app(get_open_count)
    threading.Thread(target=app.run, kwargs={"host": "0.0.0.0", "port": port}, daemon=True).start()
