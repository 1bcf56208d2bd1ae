"""Data layer — cache-first quote access.

Design: everything is constructed by src.core.bootstrap.build_service()
from one Settings object and handed out by reference; there are no
module-level instances.
  • Quotes are read memory tier -> shared (Redis) tier -> live providers.
  • Providers are tried in configured order, reordered by recent health
    and skipped while their request budget is spent.
  • Adding a provider = one QuoteProvider subclass + one PROVIDER_FACTORIES entry.
"""
