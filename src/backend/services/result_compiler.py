"""
Result compiler.

Pure read-side computation over an election's candidate counters.
"""

from models.election import Election, ElectionStatus
from schemas.election import CandidateResult, ElectionResults


def percentage(votes: int, total: int) -> float:
    """Share of the total, rounded to two decimals; 0 when nothing was cast."""
    if total <= 0:
        return 0.0
    return round(votes / total * 100, 2)


class ResultCompiler:
    """Rank candidates by votes and annotate percentages."""

    @staticmethod
    def compile(election: Election) -> ElectionResults:
        ballot = sorted(election.candidates, key=lambda c: c.position)
        total = sum(c.vote_count for c in ballot)

        # sorted() is stable, so ties keep ballot order
        ranked = sorted(ballot, key=lambda c: c.vote_count, reverse=True)

        return ElectionResults(
            election_id=election.id,
            name=election.name,
            description=election.description or "",
            status=ElectionStatus(election.status),
            total_votes=total,
            candidates=[
                CandidateResult(
                    id=c.id,
                    name=c.name,
                    party=c.party,
                    votes=c.vote_count,
                    percentage=percentage(c.vote_count, total),
                    rank=idx + 1,
                )
                for idx, c in enumerate(ranked)
            ],
        )
