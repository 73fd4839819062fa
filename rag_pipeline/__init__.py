"""
rag_pipeline — document retrieval and answer generation.

Components:
  config          — settings from the environment
  errors          — exception hierarchy
  ollama_client   — HTTP client for the model server (embed / generate / tags)
  chunker         — sentence-aligned overlapping chunks
  embedder        — text → vector, sequential, all-or-nothing per batch
  similarity      — cosine scoring and ranking
  vector_store    — request-scoped in-memory vectors
  retriever       — document retrieval strategy + ContextBundle
  llm_engine      — answer gateway with ordered model fallback
  document_loader — PDF / plain-text extraction
  document_qa     — end-to-end document question answering
"""
