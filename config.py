"""
config.py — Single source of truth for all homework-watch settings.

pydantic-settings reads .env at import time and every field is typed.
Nothing here is user-facing: the target page, the model endpoint and the
poll cadence are deployment constants supplied through the environment.

THE SETTINGS THAT MATTER:

  1. One LLM endpoint, OpenAI-compatible:
       llm_base_url + llm_api_key + llm_model point at DeepSeek by default.
       Any OpenAI-compatible provider works by swapping the three values.

  2. Low but non-zero temperature:
       The summary of "what changed on the page" should read the same way
       every time the same diff comes in. 0.3 keeps wording stable without
       making the model repeat itself verbatim.

  3. Two timeouts:
       fetch_timeout_seconds — one slow page load never stalls the loop
       llm_timeout_seconds   — one slow completion never stalls the loop
     A timed-out cycle is simply a failed cycle. The next tick is the retry.

  4. Poll cadence and history bound:
       poll_interval_seconds — 5s in the reference deployment
       history_cap           — 20 summaries kept in memory, oldest dropped

USAGE:
  from config import settings
  print(settings.target_url)
  print(settings.poll_interval_seconds)   # 5.0
  print(settings.history_cap)             # 20
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TARGET_URL = "https://sd41blogs.ca/smithc/weekly-assignments-submission-details/"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Language model ────────────────────────────────────────────────────────
    llm_api_key: str = Field(
        default="",
        description="API key for the OpenAI-compatible completion endpoint",
    )
    llm_base_url: str = Field(
        default="https://api.deepseek.com",
        description="Base URL of the OpenAI-compatible endpoint",
    )
    llm_model: str = Field(
        default="deepseek-chat",
        description="Model used to summarize page changes",
    )
    llm_temperature: float = Field(
        default=0.3,
        gt=0.0,
        le=1.0,
        description="Sampling temperature — low for consistent summaries",
    )
    llm_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Max seconds to wait for one completion",
    )
    llm_max_retries: int = Field(
        default=0,
        ge=0,
        description="SDK-level retries per completion (the next poll tick also retries)",
    )
    llm_json_mode: bool = Field(
        default=True,
        description="Request response_format=json_object from the endpoint",
    )

    # ── Page fetching ─────────────────────────────────────────────────────────
    # The managed reader (Jina Reader) renders the page in a headless browser
    # and returns clean text. The key is optional: the free tier works without
    # one, rate-limited. use_reader=False goes straight to the direct fetch.
    reader_api_key: str = Field(
        default="",
        description="Managed reader API key — leave blank for the free tier",
    )
    use_reader: bool = Field(
        default=True,
        description="Try the managed reader before fetching the HTML directly",
    )
    target_url: str = Field(
        default=DEFAULT_TARGET_URL,
        description="The single page being watched",
    )
    fetch_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Max seconds to wait for the page — exceeded = failed cycle",
    )

    # ── Poll loop ─────────────────────────────────────────────────────────────
    poll_interval_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Seconds between poll ticks",
    )
    history_cap: int = Field(
        default=20,
        ge=1,
        description="Max summaries kept in memory (newest first)",
    )

    poll_enabled: bool = Field(
        default=True,
        description="Start the poll loop when the API starts",
    )

    # ── Presentation ──────────────────────────────────────────────────────────
    cors_origins: list[str] = Field(
        default=["http://localhost:8501"],
        description="Origins allowed to call the API (the Streamlit dashboard by default)",
    )
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="Where the Streamlit dashboard reads the summary feed",
    )

    # ── Observability ─────────────────────────────────────────────────────────
    log_dir: str = Field(
        default="logs/",
        description="Directory for structured JSON cycle traces",
    )
    trace_noop_cycles: bool = Field(
        default=False,
        description="Also save traces for cycles where the page did not change",
    )
    max_trace_files: int = Field(
        default=500,
        ge=1,
        description="Trace files kept on disk; the oldest are deleted first",
    )
    slow_cycle_threshold_seconds: float = Field(
        default=20.0,
        description="Flag any poll cycle exceeding this duration",
    )


# Module-level singleton — import this everywhere, never instantiate Settings again.
settings = Settings()
