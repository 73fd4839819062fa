"""
dataset_engine — question answering over the teams / matches dataset.

Components:
  models             — SQLAlchemy ORM (teams, matches)
  data_source        — fetch contract + SQL repository
  query_classifier   — rule tier + model-assisted tier
  fetch_planner      — model-chosen fetch operation for unsure questions
  dataset_retriever  — classification → bounded fetch
  context_formatter  — records → prompt context
  dataset_qa         — end-to-end dataset question answering
"""
