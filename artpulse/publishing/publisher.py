"""
ArtPulse Opportunity Publisher
==============================

Fifth pipeline stage: turns the day's topic scores into an owner's ranked,
evidence-backed opportunity feed.

Steps:
    1. Owner interest terms; an owner without any gets nothing
    2. Topic scores for the date (confidence >= 0.6) limited to the topics
       the run clustered, WVS descending, over-fetching 2x top_n
    3. Per candidate: sizes / mediums / keywords from member listings'
       parsed signals, evidence URLs, price band, listing format
    4. Guardrails; rejected candidates are logged and dropped
    5. Ranks 1..n in score order, upserted by (owner, date, rank)
    6. In-app notification, plus a pulse alert for hot opportunities

Notification failures never fail the publish step.

Usage:
    from artpulse.publishing import OpportunityPublisher

    publisher = OpportunityPublisher(store, sink=LoggingNotificationSink())
    result = publisher.publish_opportunities(run_id, owner_id, date.today())
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from ..data.config import Settings, get_settings
from ..data.data_models import Notification, Opportunity, PriceBand, TopicScoreDaily
from ..data.store import PipelineStore
from ..notifications.notifier import (
    LoggingNotificationSink,
    NotificationSink,
    build_pulse_alert,
)
from .guardrails import validate_opportunity

logger = logging.getLogger(__name__)

TEMPLATE_TOP_N = 3

NOTIFICATION_TYPE = "opportunity_alert"
NOTIFICATION_TITLE = "New Opportunities Available"
NOTIFICATION_ACTION_URL = "/opportunities"


def determine_format(auction_intensity: float) -> str:
    """Listing format suggested by the topic's share of auctions."""
    if auction_intensity > 0.6:
        return "auction"
    if auction_intensity < 0.3:
        return "bin"
    return "hybrid"


def top_by_frequency(values: Iterable[Optional[str]], n: int = TEMPLATE_TOP_N) -> List[str]:
    """Most frequent values first; ties keep first-appearance order."""
    counts = Counter(v for v in values if v)
    return [value for value, _ in counts.most_common(n)]


def round_half_up(value: float) -> int:
    """Round to a whole number, halves away from zero (162.5 -> 163)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_price_band(median_price: float, upper_quartile_price: float) -> PriceBand:
    return PriceBand(
        min=round_half_up(median_price * 0.8),
        median=round_half_up(median_price),
        max=round_half_up(upper_quartile_price * 1.1),
    )


@dataclass
class PublishResult:
    """Outcome of one publish call."""
    run_id: str
    owner_id: str
    target_date: date
    candidates: int = 0
    published: int = 0
    rejected: List[Dict[str, Any]] = field(default_factory=list)
    opportunities: List[Opportunity] = field(default_factory=list)
    notification_created: bool = False
    alert_sent: bool = False
    skipped_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidates": self.candidates,
            "published": self.published,
            "rejected": len(self.rejected),
            "notification_created": self.notification_created,
            "alert_sent": self.alert_sent,
            "skipped_reason": self.skipped_reason,
        }


class OpportunityPublisher:
    """Builds, gates, ranks and stores an owner's daily opportunity feed."""

    def __init__(
        self,
        store: PipelineStore,
        settings: Optional[Settings] = None,
        sink: Optional[NotificationSink] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.sink = sink or LoggingNotificationSink()

    # =========================================================================
    # MAIN ENTRY POINT
    # =========================================================================

    def publish_opportunities(
        self,
        run_id: str,
        owner_id: str,
        target_date: date,
        top_n: Optional[int] = None,
    ) -> PublishResult:
        """
        Publish up to top_n opportunities for the owner and date.

        Returns:
            PublishResult; published may be below top_n when guardrails reject
        """
        cfg = self.settings.pipeline
        if top_n is None:
            top_n = cfg.publish_top_n
        result = PublishResult(run_id=run_id, owner_id=owner_id, target_date=target_date)

        terms = self.store.get_interest_terms(owner_id)
        if not terms:
            result.skipped_reason = "owner has no active interest terms"
            logger.info(f"Owner {owner_id} has no interest terms, nothing to publish")
            return result

        run_topics = {m.topic_id for m in self.store.get_memberships(run_id)}
        if not run_topics:
            result.skipped_reason = "run has no clustered topics"
            logger.info(f"Run {run_id} has no clustered topics, nothing to publish")
            return result

        scores = self.store.get_topic_scores(
            target_date,
            min_confidence=cfg.min_publish_confidence,
            limit=top_n * 2,
            topic_ids=run_topics,
        )
        result.candidates = len(scores)

        accepted: List[Opportunity] = []
        for score in scores:
            if len(accepted) >= top_n:
                break

            candidate = self.build_candidate(score, run_id, owner_id, target_date)
            is_valid, errors = validate_opportunity(
                candidate,
                min_evidence=cfg.min_evidence_urls,
                min_confidence=cfg.min_publish_confidence,
            )
            if not is_valid:
                result.rejected.append({"topic_id": score.topic_id, "errors": errors})
                logger.info(
                    f"Skipping opportunity '{candidate.topic_label}' - failed validation: "
                    f"{'; '.join(errors)}"
                )
                continue

            candidate.rank = len(accepted) + 1
            accepted.append(candidate)

        for opportunity in accepted:
            self.store.upsert_opportunity(opportunity)

        result.published = len(accepted)
        result.opportunities = accepted

        logger.info(
            f"Published {result.published} opportunities for owner {owner_id} "
            f"({result.candidates} candidates, {len(result.rejected)} rejected)"
        )

        if accepted:
            self._notify(owner_id, accepted, result)

        return result

    # =========================================================================
    # CANDIDATES
    # =========================================================================

    def build_candidate(
        self,
        score: TopicScoreDaily,
        run_id: str,
        owner_id: str,
        target_date: date,
    ) -> Opportunity:
        """Assemble an unranked opportunity from a topic score and its members."""
        memberships = self.store.get_memberships(run_id, topic_id=score.topic_id)
        member_ids = [m.listing_id for m in memberships]

        listings = self.store.get_listings(member_ids)
        owned_ids = [lid for lid in member_ids if lid in listings and listings[lid].owner_id == owner_id]
        signals = self.store.get_parsed_signals(owned_ids)
        ordered_signals = [signals[lid] for lid in owned_ids if lid in signals]

        keywords: List[str] = []
        for signal in ordered_signals:
            keywords.extend(v for v in (signal.subject, signal.style) if v)
            keywords.extend(signal.color_tags)

        evidence: List[str] = []
        for lid in owned_ids:
            url = listings[lid].url
            if url and url not in evidence:
                evidence.append(url)
            if len(evidence) >= self.settings.pipeline.max_evidence_urls:
                break

        label = score.topic_label
        if not label:
            cluster = self.store.get_clusters([score.topic_id]).get(score.topic_id)
            label = cluster.label if cluster else "Unknown"

        return Opportunity(
            owner_id=owner_id,
            opportunity_date=target_date,
            rank=0,
            run_id=run_id,
            topic_id=score.topic_id,
            topic_label=label,
            wvs_score=score.wvs_score,
            velocity_score=score.velocity_score,
            price_band=build_price_band(score.median_price, score.upper_quartile_price),
            recommended_sizes=top_by_frequency(s.size_bucket for s in ordered_signals),
            recommended_mediums=top_by_frequency(s.medium for s in ordered_signals),
            keyword_stack=top_by_frequency(keywords),
            evidence_urls=evidence,
            format_recommendation=determine_format(score.auction_intensity),
            confidence=score.confidence,
        )

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def _notify(self, owner_id: str, accepted: List[Opportunity], result: PublishResult) -> None:
        """In-app record, then the pulse alert for hot opportunities."""
        try:
            self.store.create_notification(Notification(
                owner_id=owner_id,
                type=NOTIFICATION_TYPE,
                title=NOTIFICATION_TITLE,
                message=(
                    f"{len(accepted)} new art opportunities have been identified "
                    f"based on your keywords."
                ),
                action_url=NOTIFICATION_ACTION_URL,
            ))
            result.notification_created = True
        except Exception as e:
            logger.error(f"Failed to create in-app notification for owner {owner_id}: {e}")

        hot = [o for o in accepted if o.wvs_score >= self.settings.pipeline.hot_wvs_threshold]
        if not hot:
            return

        try:
            email = self.store.get_owner_email(owner_id)
            if not email:
                logger.warning(f"Owner {owner_id} has {len(hot)} hot opportunities but no email")
                return
            payload = build_pulse_alert(email, hot, self.settings.notifications.app_url)
            result.alert_sent = self.sink.send(payload)
        except Exception as e:
            logger.error(f"Failed to send pulse alert for owner {owner_id}: {e}")
