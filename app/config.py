from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter (generation backend)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "google/gemini-2.0-flash-001"
    openrouter_model: str = ""
    llm_max_tokens: int = 8192

    # Web search
    tavily_api_key: str = ""
    web_max_search_queries: int = 3
    web_results_per_query: int = 5
    web_max_documents: int = 15
    web_max_document_chars: int = 4000

    # Academic sources
    arxiv_api_url: str = "http://export.arxiv.org/api/query"
    github_api_url: str = "https://api.github.com/search/repositories"
    github_token: str = ""
    academic_max_papers: int = 5
    academic_max_pdf_bytes: int = 10 * 1024 * 1024
    academic_max_pdf_pages: int = 20
    academic_chunk_size: int = 800
    academic_chunk_overlap: int = 100
    academic_top_chunks: int = 8
    academic_max_attempts: int = 2
    academic_retry_delay_seconds: float = 2.0

    http_timeout_seconds: float = 10.0
    pdf_timeout_seconds: float = 30.0

    # Supabase (persistence + identity)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # App
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
