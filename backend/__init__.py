"""Backend package exposing the consignment FastAPI application (see ``backend.main``)."""
