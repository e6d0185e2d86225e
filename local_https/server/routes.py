from pathlib import Path
from typing import cast
from urllib.parse import quote
from flask import Blueprint, Response, abort, current_app as app, redirect, render_template_string, send_file
from werkzeug.security import safe_join

INDEX_FILE = "index.html"
LISTING_TEMPLATE = """<!doctype html>
<meta name="viewport" content="width=device-width">
<title>Index of /{{ path }}</title>
<pre>
{%- for href, name in entries %}
<a href="{{ href }}">{{ name }}</a>
{%- endfor %}
</pre>
"""

files = Blueprint("files", __name__)


def get_root_dir() -> Path:
    return cast(Path, app.extensions["root_dir"])


@files.route("/", defaults={"path": ""}, methods=["GET", "HEAD"])
@files.route("/<path:path>", methods=["GET", "HEAD"])
def serve_path(path: str) -> Response:
    target = safe_join(str(get_root_dir()), path)
    if target is None:
        abort(404)
    
    target = Path(target)
    if target.is_dir():
        if path and not path.endswith("/"):
            return redirect(f"/{quote(path)}/", code=301)
        
        index = target / INDEX_FILE
        if index.is_file():
            return send_file(index)
        return list_dir(target, path)
    
    if target.is_file():
        return send_file(target)
    abort(404)


def list_dir(directory: Path, path: str) -> str:
    entries = []
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        name = f"{entry.name}/" if entry.is_dir() else entry.name
        entries.append((quote(name), name))
    
    return render_template_string(LISTING_TEMPLATE, path=path, entries=entries)
