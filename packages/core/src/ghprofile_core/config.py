import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "provider": "openai",
    "model": None,  # None = provider default
    "api_key": None,  # None = read from the provider's environment variable
    "endpoint": None,
    "max_tokens": 2048,
    "temperature": 0.2,
    "requests_per_minute": 60,
    "parallel_requests": 4,
    "prompt_path": None,  # None = built-in code review prompt
    "out_dir": "out",
    "repos_limit": 10,
    "chunks_per_repo": 6,
    "max_chunk_bytes": 12000,
    "include_pinned": True,
    "include_non_pinned": True,
    "exclude_forks": True,
    "exclude": [],  # fnmatch patterns or directory names never sampled (e.g. "migrations/", "*.min.js")
    "exclude_repos": [],  # fnmatch patterns on "owner/name" or "name"
    "cache_dir": None,  # None = platform per-user cache directory
}

# Fallbacks for non-positive values, which would stall the fan-out.
_DEFAULT_PARALLEL_REQUESTS = 4
_DEFAULT_REQUESTS_PER_MINUTE = 60

PROVIDER_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}
SUPPORTED_PROVIDERS = tuple(PROVIDER_KEY_ENV)

BUILTIN_PROMPTS_DIR = Path(__file__).parent / "prompts"

PROMPT_CODE_REVIEW = "code_review"
PROMPT_ARCH_STANDARD = "arch_standard"
PROMPT_ARCH_MONOREPO = "arch_monorepo"
PROMPT_HEADLINE = "headline"
PROMPT_SUMMARY = "summary"


def load_config(config_path: str = ".ghprofile.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .ghprofile.yml in the current directory
      3. CLI argument overrides
    """
    config = {
        **DEFAULT_CONFIG,
        "exclude": list(DEFAULT_CONFIG["exclude"]),
        "exclude_repos": list(DEFAULT_CONFIG["exclude_repos"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if not config.get("parallel_requests") or config["parallel_requests"] <= 0:
        config["parallel_requests"] = _DEFAULT_PARALLEL_REQUESTS
    if not config.get("requests_per_minute") or config["requests_per_minute"] <= 0:
        config["requests_per_minute"] = _DEFAULT_REQUESTS_PER_MINUTE

    # Resolve credentials from environment variables
    config["github_token"] = config.get("github_token") or os.environ.get("GITHUB_TOKEN")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["gemini_api_key"] = os.environ.get("GEMINI_API_KEY")

    return config


def resolve_api_key(config: dict) -> Optional[str]:
    """Return the API key for the configured provider.

    An explicit ``api_key`` in the config file wins over the provider's
    environment variable.
    """
    if config.get("api_key"):
        return config["api_key"]
    provider = config.get("provider", "")
    return config.get(f"{provider}_api_key")


def load_prompt(config: dict, name: str) -> str:
    """
    Load a prompt template by name.

    ``prompt_path`` in config overrides the code review prompt only, loaded
    relative to cwd. Every other prompt comes from the built-in directory.
    """
    if name == PROMPT_CODE_REVIEW and config.get("prompt_path"):
        p = Path(config["prompt_path"])
        if not p.exists():
            raise FileNotFoundError(f"Prompt file not found: {config['prompt_path']}")
        return p.read_text()

    builtin = BUILTIN_PROMPTS_DIR / f"{name}.txt"
    if builtin.exists():
        return builtin.read_text()

    raise FileNotFoundError(f"Built-in prompt {name!r} is missing.")
