"""
docgen - documentation aggregation and live watch for multi-package ecosystems.

Packages discovered across one or more ecosystems are aggregated into a
single output tree plus a ``manifest.json`` for the site generator, either
as a full batch run (``docgen aggregate``) or incrementally as authors edit
(``docgen watch``). What gets published depends on each piece of content's
publication status (draft, dev, production) and the build mode.
"""

__version__ = "0.1.0"
