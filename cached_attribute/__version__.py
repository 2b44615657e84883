__title__ = 'cached_attribute'
__description__ = 'Transparent store-backed caching and per-instance memoization for expensive attribute computations'
__version__ = '2026.10.19'
