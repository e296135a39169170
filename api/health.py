from flask import Blueprint, current_app

bp = Blueprint("health", __name__)

@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            store:
              type: string
              example: DBStorage
    """
    store = current_app.extensions["session_store"]
    return {"status": "ok", "store": type(store).__name__}, 200
