"""Acquisition core: fetch pages from sites that resist automated access.

Sub-modules:
- ``config``         : constants and tuning parameters
- ``models``         : request, attempt and result value types
- ``gate``           : process-wide concurrency gate for browser sessions
- ``block_detector`` : content-based detection of denial and challenge pages
- ``rendering``      : Playwright renderer behind a small session protocol
- ``interceptor``    : capture of the page's own JSON responses
- ``http_fetcher``   : plain httpx requests for direct and fallback fetches
- ``acquirer``       : the multi-strategy protocol with retry and fallback
- ``tasks``          : Celery snapshot tasks
- ``router``         : FastAPI routes (``/scrape``, ``/fastpitch/{alias}``, ``/targets``)
"""
