"""Infrastructure services - storage, caching, retries and job orchestration."""
