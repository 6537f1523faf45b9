"""HTTP API — stateless FastAPI front end to the arrangement engine."""
