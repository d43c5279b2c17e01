"""
Pydantic / datamodels used by the upload history runtime.

Split into:
- history_models: HistoryItem + validate_history_item
"""
