from .review_provider import ApifyReviewProvider, ReviewProvider, ScraperError

__all__ = ["ApifyReviewProvider", "ReviewProvider", "ScraperError"]
