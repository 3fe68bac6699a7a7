from .evaluator import SettlementDecision, evaluate
from .fsm import AuctionStatus
from .ledger import BidSummary, summarize
from .models import Auction, AuctionCorrection, Bid, Money

__all__ = [
    "Auction",
    "AuctionCorrection",
    "AuctionStatus",
    "Bid",
    "BidSummary",
    "Money",
    "SettlementDecision",
    "evaluate",
    "summarize",
]
