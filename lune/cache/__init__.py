from .template_cache import CacheEntry, CacheStats, TemplateCache, DEFAULT_MAX_SIZE

__all__ = ["TemplateCache", "CacheStats", "CacheEntry", "DEFAULT_MAX_SIZE"]
