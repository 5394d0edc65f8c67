"""Application-wide configuration and settings.

Uses ``pydantic-settings`` so values can be overridden via environment
variables prefixed with ``CARTOGRAPH_``.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global settings for the Cartograph analysis and retrieval engine.

    Attributes:
        app_name: Display name of the application.
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        default_blacklist: Directory/file patterns to skip during crawling.
        max_file_size_bytes: Skip files larger than this threshold.
        max_chunk_size: Chunk size threshold (UTF-8 bytes) for AST chunking.
        analysis_workers: Number of files analyzed concurrently.
        embedding_model: HuggingFace sentence-transformers model name.
        embedding_concurrency: Concurrent embedding calls during a rebuild.
        rag_top_k: Number of semantic matches returned per query.
        openai_api_key: API key for the chat completion backend.
        openai_model: Chat model (or Azure deployment) name.
        openai_base_url: Optional OpenAI-compatible endpoint (e.g. Ollama).
        azure_endpoint: Azure OpenAI endpoint; switches to the Azure client.
        llm_max_tokens: Completion token cap.
        snapshot_dir: Directory for persisted graph snapshots.
    """

    app_name: str = "Cartograph"
    log_level: str = "INFO"
    default_blacklist: list[str] = [
        ".git",
        "node_modules",
        "__pycache__",
        "venv",
        ".venv",
        ".tox",
        ".mypy_cache",
        ".pytest_cache",
        ".vscode",
        ".idea",
        ".next",
        ".nuxt",
        "dist",
        "build",
        "coverage",
        "*.egg-info",
        ".DS_Store",
        "Thumbs.db",
        ".gitkeep",
        "package-lock.json",
        ".cartograph",
    ]
    max_file_size_bytes: int = 1_048_576  # 1 MB

    # Analysis
    max_chunk_size: int = 2000
    analysis_workers: int = 8

    # Embeddings
    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_concurrency: int = 1

    # Retrieval + synthesis
    rag_top_k: int = 20
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = ""
    azure_endpoint: str = ""
    llm_max_tokens: int = 2048

    snapshot_dir: str = ".cartograph"

    model_config = {"env_prefix": "CARTOGRAPH_", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
