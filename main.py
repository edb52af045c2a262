"""
Cloud Functions entry point.

Cloud Functions loads main.py from the source root; the function itself
lives in gradedrop/main.py.

    gcloud functions deploy intake --gen2 --runtime=python312 \
        --trigger-http --entry-point=intake --source=.
"""

from gradedrop.main import intake

__all__ = ["intake"]
