from flask import Blueprint, current_app, render_template, send_from_directory

from .metrics import counted, hits

bp = Blueprint("admin", __name__, template_folder="templates")


@bp.get("/app/")
@bp.get("/app/<path:path>")
@counted
def fileserver(path: str = "index.html"):
    """
    Static front-end files (every request counts as a hit)
    ---
    tags:
      - Admin
    parameters:
      - in: path
        name: path
        type: string
        required: true
    responses:
      200: { description: File contents }
      404: { description: No such file }
    """
    return send_from_directory(current_app.config["FILESERVER_ROOT"], path)


@bp.get("/admin/metrics")
@counted
def metrics():
    """
    File-server hit count as an HTML page
    ---
    tags:
      - Admin
    produces:
      - text/html
    responses:
      200: { description: HTML page }
    """
    html = render_template("metrics.html", count=hits().value)
    return html, 200, {"Content-Type": "text/html; charset=utf-8"}


@bp.post("/admin/reset")
def reset_hits():
    """
    Reset the hit counter to zero
    ---
    tags:
      - Admin
    responses:
      200: { description: Counter reset }
    """
    hits().reset()
    return "Hits reset to 0", 200, {"Content-Type": "text/plain; charset=utf-8"}
