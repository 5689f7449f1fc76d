# Web layer: FastAPI app, session auth and public embed pages
