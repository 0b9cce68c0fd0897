from flask import Blueprint

bp = Blueprint("health", __name__)


@bp.get("/health")
def health_check():
    """
    Liveness probe for load balancers and container orchestrators
    ---
    tags:
      - Health
    responses:
      200:
        description: The process is up and serving requests
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
    """
    return {"status": "ok"}, 200
