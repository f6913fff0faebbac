"""
Lumen - provider connectivity for local and cloud LLMs.

Discovers models on local runtimes (Ollama, LM Studio, Docker Model Runner,
Hugging Face), resolves cloud catalogs (OpenAI, Anthropic, Google), stores
API keys and per-model generation parameters, and routes chat messages to
the provider that owns the selected model.

Quick Start:
    pip install -e .
    lumen scan
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
