"""
Services package - reel generation pipeline and its infrastructure

Pipeline:
    - pipeline/assembly: orchestration of clip synthesis, template
      composition, progress reporting and selective regeneration

Clients:
    - clients: vendor adapters for clip synthesis and flyover capture

Infrastructure:
    - infrastructure/storage: job, asset, listing and object storage
    - infrastructure/cache: artifact cache and cache keys
    - infrastructure/orchestration: job store, recovery and lifecycle
    - infrastructure/retry.py, resources.py: retry and temp-file tracking
"""
