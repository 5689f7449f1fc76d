# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - persistence/: MongoDB repository
# - scraper/: external review scraping provider (HTTP)
# - config/: Environment and settings management
