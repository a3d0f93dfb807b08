"""FastAPI routers mounted by :func:`clip_review.api.main.create_app`."""
