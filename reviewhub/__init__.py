# ReviewHub - Review Aggregation & Embeddable Widgets
# ===================================================
# Collects Google and Facebook reviews per business listing and serves
# them through configurable widgets embedded on third-party sites.
#
# ARCHITECTURE LAYERS:
# - Web:            FastAPI routes, session auth, embed pages
# - Domain:         Pure logic (validation, filtering, layouts, embed code)
# - Infrastructure: External services (MongoDB, scraping provider, config)
