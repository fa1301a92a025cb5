"""Lightweight local HTTP API for the launcher UI."""

from typing import Optional
import json
import threading
from flask import Flask, request, jsonify

from .exceptions import InvalidBackupError
from .launcher import Launcher


_app_instance: Optional[Flask] = None
_server_thread: Optional[threading.Thread] = None


def _app_json(launcher: Launcher, app) -> dict:
	data = app.to_dict()
	data['entryUrl'] = launcher.app_index.entry_url(app)
	data['iconUrl'] = launcher.app_index.icon_url(app)
	return data


def create_app(launcher: Launcher) -> Flask:
	app = Flask("appshell_api")

	@app.get("/health")
	def health():
		return jsonify({"status": "ok"})

	# Basic CORS for a locally served launcher page
	@app.after_request
	def add_cors_headers(response):
		response.headers["Access-Control-Allow-Origin"] = "*"
		response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
		response.headers["Access-Control-Allow-Headers"] = "Content-Type"
		return response

	@app.route("/search", methods=["GET", "OPTIONS"])
	def search():
		if request.method == "OPTIONS":
			return ("", 204)
		query = request.args.get('q', '') or ''
		apps = launcher.search(query)
		return jsonify({'query': query, 'apps': [_app_json(launcher, a) for a in apps]})

	@app.route("/apps", methods=["GET", "OPTIONS"])
	def list_apps():
		if request.method == "OPTIONS":
			return ("", 204)
		category = request.args.get('category', 'all') or 'all'
		sort = request.args.get('sort', 'recent') or 'recent'
		apps = launcher.list_apps(category, sort)
		return jsonify({'apps': [_app_json(launcher, a) for a in apps]})

	@app.route("/categories", methods=["GET", "OPTIONS"])
	def categories():
		if request.method == "OPTIONS":
			return ("", 204)
		return jsonify({'categories': launcher.app_index.all_categories()})

	@app.route("/apps/<app_id>/open", methods=["POST", "OPTIONS"])
	def open_app(app_id):
		if request.method == "OPTIONS":
			return ("", 204)
		entry_url = launcher.open_app(app_id)
		if entry_url is None:
			return jsonify({'status': 'error', 'message': f'app not found: {app_id}'}), 404
		return jsonify({'status': 'ok', 'entry': entry_url, 'theme': launcher.theme.get_theme()})

	@app.route("/recents", methods=["GET", "OPTIONS"])
	def recents():
		if request.method == "OPTIONS":
			return ("", 204)
		try:
			limit = int(request.args.get('limit', 5))
		except ValueError:
			return jsonify({'status': 'error', 'message': 'limit must be an integer'}), 400
		return jsonify({'apps': [r.to_dict() for r in launcher.recent_apps(limit)]})

	@app.route("/theme", methods=["GET", "POST", "OPTIONS"])
	def theme():
		if request.method == "OPTIONS":
			return ("", 204)
		if request.method == "POST":
			data = request.get_json(silent=True) or {}
			if data.get('reset'):
				launcher.theme.reset()
			else:
				theme_name = str(data.get('theme', '')).strip()
				if not theme_name:
					return jsonify({'status': 'error', 'message': 'missing theme'}), 400
				launcher.theme.apply(theme_name)
		return jsonify({'theme': launcher.theme.get_theme(), 'color': launcher.theme.theme_color()})

	@app.route("/update/status", methods=["GET", "OPTIONS"])
	def update_status():
		if request.method == "OPTIONS":
			return ("", 204)
		return jsonify(launcher.updates.to_dict())

	@app.route("/update/check", methods=["POST", "OPTIONS"])
	def update_check():
		if request.method == "OPTIONS":
			return ("", 204)
		result = launcher.updates.check_for_updates(announce=True)
		return jsonify(result.to_dict())

	@app.route("/update/install", methods=["POST", "OPTIONS"])
	def update_install():
		if request.method == "OPTIONS":
			return ("", 204)
		# The install waits on the cache process; run it off the request thread
		threading.Thread(target=launcher.updates.install_update, daemon=True).start()
		return jsonify({'status': 'ok', 'phase': launcher.updates.phase.value}), 202

	@app.route("/update/auto-check", methods=["POST", "OPTIONS"])
	def update_auto_check():
		if request.method == "OPTIONS":
			return ("", 204)
		data = request.get_json(silent=True) or {}
		launcher.updates.set_auto_check(bool(data.get('enabled', True)))
		return jsonify({'autoCheck': launcher.updates.auto_check_enabled()})

	@app.route("/export", methods=["GET", "OPTIONS"])
	def export():
		if request.method == "OPTIONS":
			return ("", 204)
		return jsonify(launcher.export())

	@app.route("/import", methods=["POST", "OPTIONS"])
	def import_backup():
		"""Import a backup; the UI must have shown the preview and set `confirm`."""
		if request.method == "OPTIONS":
			return ("", 204)
		data = request.get_json(silent=True) or {}
		backup = data.get('backup')
		if backup is None:
			return jsonify({'status': 'error', 'message': 'missing backup'}), 400
		text = backup if isinstance(backup, str) else json.dumps(backup)
		confirmed = bool(data.get('confirm', False))
		try:
			applied = launcher.import_backup(text, lambda message: confirmed)
		except InvalidBackupError as e:
			return jsonify({'status': 'error', 'message': str(e)}), 400
		return jsonify({'status': 'ok' if applied else 'cancelled'})

	@app.route("/reset", methods=["POST", "OPTIONS"])
	def reset():
		if request.method == "OPTIONS":
			return ("", 204)
		data = request.get_json(silent=True) or {}
		confirmed = bool(data.get('confirm', False))
		deleted = launcher.reset(lambda message: confirmed)
		return jsonify({'status': 'ok' if deleted else 'cancelled'})

	@app.route("/notifications", methods=["GET", "OPTIONS"])
	def notifications():
		if request.method == "OPTIONS":
			return ("", 204)
		return jsonify({'notifications': [n.to_dict() for n in launcher.notifier.drain()]})

	return app


def start_api_server(launcher: Launcher, port: int = 8790) -> None:
	"""
	Start the local API server in a background thread.
	Only binds to 127.0.0.1.
	"""
	global _app_instance, _server_thread
	if _server_thread and _server_thread.is_alive():
		return
	_app_instance = create_app(launcher)

	def run():
		_app_instance.run(host="127.0.0.1", port=port, debug=False, use_reloader=False)

	_server_thread = threading.Thread(target=run, daemon=True)
	_server_thread.start()
