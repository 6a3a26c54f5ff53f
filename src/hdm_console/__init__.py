"""
Hospital data-management console: request lifecycle toolkit.

Packages:
- fetch/: request task, pagination, infinite scroll, debounce, error messages
- core/: ports (Protocols) the fetch layer depends on
- config.py / logging_setup.py: settings layer and logging wiring
"""
