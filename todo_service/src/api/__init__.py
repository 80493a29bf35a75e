"""
FastAPI Todo service package.

The application object lives in ``src.api.main``; serve it with
``uvicorn src.api.main:app`` or ``python run.py``.
"""
