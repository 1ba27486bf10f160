# Pydantic Models
from product_discovery.models.candidate import Candidate, CandidateSource, QueryTier
from product_discovery.models.search import RawHit, ScoreClass, ScoredHit
from product_discovery.models.product import Product, SourceTier
from product_discovery.models.request import ConversationTurn, DiscoveryRequest
from product_discovery.models.response import CacheStats, DiscoveryResponse

__all__ = [
    # Candidate models
    "Candidate",
    "CandidateSource",
    "QueryTier",
    # Search models
    "RawHit",
    "ScoreClass",
    "ScoredHit",
    # Product models
    "Product",
    "SourceTier",
    # Request models
    "ConversationTurn",
    "DiscoveryRequest",
    # Response models
    "CacheStats",
    "DiscoveryResponse",
]
