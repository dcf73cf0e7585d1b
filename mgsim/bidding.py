"""
Auction Resolver.

Bids placed at bidding markets during one pass of the turn order are
resolved together at the end of that pass. Lower call price wins; only
research chips and parent status move a company's call price.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from mgsim.actions import complete_sale, consume_row
from mgsim.capacity import price_competitiveness, sellable_quantity
from mgsim.invariants import check_company, check_markets
from mgsim.schema import ACTION_SELL
from mgsim.state import GameState, LOG_DECISION, LOG_BID_LOSS


@dataclass
class Bid:
    """Sale attempt at a bidding market."""
    company_id: int
    market: str
    price: int
    quantity: int
    call_price: int = 0
    research: int = 0
    is_parent: bool = False
    tiebreak: float = 0.0

    def sort_key(self):
        return (self.call_price, -self.research, 0 if self.is_parent else 1, self.tiebreak)

    def to_dict(self) -> Dict:
        return {
            "company_id": self.company_id,
            "market": self.market,
            "price": self.price,
            "quantity": self.quantity,
            "call_price": self.call_price,
        }


@dataclass
class BidResult:
    bid: Bid
    won: bool
    quantity: int = 0
    revenue: int = 0

    def to_dict(self) -> Dict:
        return {
            "bid": self.bid.to_dict(),
            "won": self.won,
            "quantity": self.quantity,
            "revenue": self.revenue,
        }


def make_bid(company_id: int, market: str, price: int, quantity: int, state: GameState) -> Bid:
    """Create a bid with its call price computed from the current state."""
    company = state.companies[company_id]
    return Bid(
        company_id=company_id,
        market=market,
        price=price,
        quantity=quantity,
        call_price=price - price_competitiveness(company, state),
        research=company.chips.get("research", 0),
        is_parent=state.is_parent(company_id),
    )


def rank_bids(bids: List[Bid], state: GameState) -> List[Bid]:
    """
    Order bids for allocation.

    Ascending call price, then more research chips, then the parent, then a
    uniform key from the game's RNG.
    """
    for bid in bids:
        bid.tiebreak = state.roller.random()
    return sorted(bids, key=lambda b: b.sort_key())


def resolve_market(state: GameState, market_name: str, bids: List[Bid]) -> List[BidResult]:
    """Allocate one market's bids in rank order."""
    rules = state.rules
    market = state.market(market_name)
    results = []

    for bid in rank_bids(bids, state):
        company = state.companies[bid.company_id]
        allocable = min(market.remaining(), bid.quantity, sellable_quantity(company, state))

        if allocable < rules.min_sale_quantity:
            company.add_log(
                state.period, LOG_BID_LOSS, ACTION_SELL,
                f"lost bid at {market.name} (call {bid.call_price})",
            )
            results.append(BidResult(bid=bid, won=False))
            continue

        revenue = complete_sale(company, market, bid.price, allocable, state)
        company.add_log(
            state.period, LOG_DECISION, ACTION_SELL,
            f"won {allocable} at {market.name} for {bid.price} (call {bid.call_price})",
            revenue,
        )
        consume_row(company)
        check_company(company, state)
        results.append(BidResult(bid=bid, won=True, quantity=allocable, revenue=revenue))

    check_markets(state)
    return results


def resolve_auctions(state: GameState, bids: List[Bid]) -> List[BidResult]:
    """Resolve all queued bids, market by market in market order."""
    by_market: Dict[str, List[Bid]] = {}
    for bid in bids:
        by_market.setdefault(bid.market, []).append(bid)

    results = []
    for market in state.markets:
        if market.name in by_market:
            results.extend(resolve_market(state, market.name, by_market[market.name]))
    return results


def winner_of(results: List[BidResult]) -> Optional[int]:
    for result in results:
        if result.won:
            return result.bid.company_id
    return None
