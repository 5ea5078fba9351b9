"""
ArtPulse PostgreSQL Store
=========================

PipelineStore backed by PostgreSQL through a psycopg2 connection pool.

Every write is an upsert by natural key (ON CONFLICT ... DO UPDATE) or an
insert-if-absent (ON CONFLICT ... DO NOTHING), so re-running a stage
converges. Rows are converted into data_models DTOs before they leave
this module.

Usage:
    from artpulse.data.postgres_store import PostgresStore

    with PostgresStore() as store:
        store.ensure_schema()
        run = store.create_run("owner-1", "abstract painting")
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from psycopg2 import pool
from psycopg2.extras import Json, RealDictCursor, execute_values

from ..exceptions import StoreError
from .config import Settings, get_settings
from .data_models import (
    CleanListing,
    Notification,
    Opportunity,
    ParsedSignal,
    PriceBand,
    RunRecord,
    RunStatus,
    SizeRollup,
    StyleRollup,
    TopicCluster,
    TopicMembership,
    TopicScoreDaily,
)
from .store import PipelineStore

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

CLEAN_LISTING_COLUMNS = (
    "id, run_id, owner_id, url, title, price, currency, is_auction, bid_count, "
    "watcher_count, search_term, observed_at, first_seen_at, is_active, image_url, "
    "dedupe_hash, wvs_score, watch_velocity, demand_label, scored_at, visual_metadata"
)


def _float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _row_to_run(row: Dict[str, Any]) -> RunRecord:
    run = RunRecord(
        id=row["id"],
        owner_id=row["owner_id"],
        status=RunStatus(row["status"]),
        search_term=row["search_term"],
        started_at=row["started_at"],
        ended_at=row["ended_at"],
        error_summary=row["error_summary"],
    )
    for name in RunRecord.COUNTER_FIELDS:
        setattr(run, name, row[name] or 0)
    return run


def _row_to_listing(row: Dict[str, Any]) -> CleanListing:
    return CleanListing(
        id=row["id"],
        run_id=row["run_id"],
        owner_id=row["owner_id"],
        url=row["url"],
        title=row["title"],
        price=float(row["price"]),
        dedupe_hash=row["dedupe_hash"],
        currency=row["currency"],
        is_auction=row["is_auction"],
        bid_count=row["bid_count"],
        watcher_count=row["watcher_count"],
        search_term=row["search_term"],
        observed_at=row["observed_at"],
        first_seen_at=row["first_seen_at"],
        is_active=row["is_active"],
        image_url=row["image_url"],
        wvs_score=_float(row["wvs_score"]),
        watch_velocity=_float(row["watch_velocity"]),
        demand_label=row["demand_label"],
        scored_at=row["scored_at"],
        visual_metadata=row["visual_metadata"],
    )


def _row_to_signal(row: Dict[str, Any]) -> ParsedSignal:
    return ParsedSignal(
        listing_id=row["listing_id"],
        owner_id=row["owner_id"],
        width_in=row["width_in"],
        height_in=row["height_in"],
        size_bucket=row["size_bucket"],
        medium=row["medium"],
        subject=row["subject"],
        style=row["style"],
        color_tags=list(row["color_tags"] or []),
        confidence=float(row["confidence"]),
        extractor=row["extractor"],
    )


def _row_to_cluster(row: Dict[str, Any]) -> TopicCluster:
    return TopicCluster(
        id=row["id"],
        slug=row["slug"],
        label=row["label"],
        run_id=row["run_id"],
        created_at=row["created_at"],
    )


def _row_to_topic_score(row: Dict[str, Any]) -> TopicScoreDaily:
    return TopicScoreDaily(
        topic_id=row["topic_id"],
        score_date=row["score_date"],
        run_id=row["run_id"],
        wvs_score=float(row["wvs_score"]),
        velocity_score=float(row["velocity_score"]),
        demand_score=float(row["demand_score"]),
        median_price=float(row["median_price"]),
        upper_quartile_price=float(row["upper_quartile_price"]),
        auction_intensity=float(row["auction_intensity"]),
        listing_count=row["listing_count"],
        confidence=float(row["confidence"]),
        topic_label=row.get("topic_label"),
    )


def _row_to_opportunity(row: Dict[str, Any]) -> Opportunity:
    band = row["price_band"] or {}
    return Opportunity(
        owner_id=row["owner_id"],
        opportunity_date=row["opportunity_date"],
        rank=row["rank"],
        run_id=row["run_id"],
        topic_id=row["topic_id"],
        topic_label=row["topic_label"],
        wvs_score=float(row["wvs_score"]),
        velocity_score=float(row["velocity_score"]),
        price_band=PriceBand(
            min=int(band.get("min", 0)),
            median=int(band.get("median", 0)),
            max=int(band.get("max", 0)),
        ),
        recommended_sizes=list(row["recommended_sizes"] or []),
        recommended_mediums=list(row["recommended_mediums"] or []),
        keyword_stack=list(row["keyword_stack"] or []),
        evidence_urls=list(row["evidence_urls"] or []),
        format_recommendation=row["format_recommendation"],
        confidence=float(row["confidence"]),
    )


class PostgresStore(PipelineStore):
    """
    PostgreSQL-backed collaborator store.

    The connection pool is created lazily on first use and closed by
    close() when the store owns it.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        db_pool: Optional[pool.ThreadedConnectionPool] = None,
    ):
        self.settings = settings or get_settings()
        self._db_pool = db_pool
        self._own_pool = db_pool is None

    @property
    def db_pool(self) -> pool.ThreadedConnectionPool:
        """Lazy-initialize database connection pool."""
        if self._db_pool is None:
            db_config = self.settings.database
            if not db_config.password:
                raise StoreError("DATABASE_PASSWORD is not set")
            try:
                self._db_pool = pool.ThreadedConnectionPool(
                    minconn=db_config.pool_min_size,
                    maxconn=db_config.pool_max_size,
                    **db_config.connection_dict
                )
            except Exception as e:
                raise StoreError(f"Could not connect to database: {e}") from e
            logger.info(f"Database connection pool created: {db_config.host}:{db_config.port}/{db_config.name}")
        return self._db_pool

    @contextmanager
    def get_db_connection(self):
        """
        Get a database connection from the pool.

        Commits on success, rolls back and raises StoreError on failure.
        """
        conn = None
        try:
            conn = self.db_pool.getconn()
            yield conn
            conn.commit()
        except StoreError:
            if conn:
                conn.rollback()
            raise
        except Exception as e:
            if conn:
                conn.rollback()
            raise StoreError(f"Database operation failed: {e}") from e
        finally:
            if conn:
                self.db_pool.putconn(conn)

    def _fetch_all(self, sql: str, params: Any = None) -> List[Dict[str, Any]]:
        with self.get_db_connection() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                return [dict(r) for r in cur.fetchall()]

    def _fetch_one(self, sql: str, params: Any = None) -> Optional[Dict[str, Any]]:
        rows = self._fetch_all(sql, params)
        return rows[0] if rows else None

    def _execute(self, sql: str, params: Any = None) -> int:
        with self.get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.rowcount

    def close(self):
        """Clean up resources."""
        if self._own_pool and self._db_pool is not None:
            self._db_pool.closeall()
            self._db_pool = None
            logger.info("Database connection pool closed")

    def ensure_schema(self) -> None:
        """Apply schema.sql (idempotent)."""
        self._execute(SCHEMA_PATH.read_text())
        logger.info("Database schema ensured")

    def health_check(self) -> Dict[str, Any]:
        try:
            self._fetch_one("SELECT 1 AS ok")
            return {"status": "healthy"}
        except StoreError as e:
            return {"status": "unhealthy", "error": str(e)}

    # =========================================================================
    # Runs
    # =========================================================================

    def create_run(self, owner_id: str, search_term: Optional[str] = None) -> RunRecord:
        run = RunRecord(id=str(uuid.uuid4()), owner_id=owner_id, search_term=search_term)
        self._execute(
            """
            INSERT INTO pipeline_runs (id, owner_id, search_term, status, started_at)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (run.id, run.owner_id, run.search_term, run.status.value, run.started_at),
        )
        return run

    def update_run(self, run: RunRecord) -> None:
        counters = run.counters()
        assignments = ", ".join(f"{name} = %s" for name in counters)
        self._execute(
            f"""
            UPDATE pipeline_runs
            SET status = %s, ended_at = %s, error_summary = %s, {assignments}
            WHERE id = %s
            """,
            (run.status.value, run.ended_at, run.error_summary, *counters.values(), run.id),
        )

    def get_run(self, run_id: str) -> Optional[RunRecord]:
        row = self._fetch_one("SELECT * FROM pipeline_runs WHERE id = %s", (run_id,))
        return _row_to_run(row) if row else None

    def get_last_run(self, owner_id: str) -> Optional[RunRecord]:
        row = self._fetch_one(
            "SELECT * FROM pipeline_runs WHERE owner_id = %s ORDER BY started_at DESC LIMIT 1",
            (owner_id,),
        )
        return _row_to_run(row) if row else None

    def find_running_run(self, owner_id: str, started_after: datetime) -> Optional[RunRecord]:
        row = self._fetch_one(
            """
            SELECT * FROM pipeline_runs
            WHERE owner_id = %s AND status = %s AND started_at >= %s
            ORDER BY started_at DESC
            LIMIT 1
            """,
            (owner_id, RunStatus.RUNNING.value, started_after),
        )
        return _row_to_run(row) if row else None

    # =========================================================================
    # Owners
    # =========================================================================

    def list_active_owners(self) -> List[str]:
        rows = self._fetch_all(
            """
            SELECT DISTINCT o.id
            FROM owners o
            JOIN owner_interests i ON i.owner_id = o.id AND i.is_active
            WHERE o.is_active
            ORDER BY o.id
            """
        )
        return [r["id"] for r in rows]

    def get_owner_email(self, owner_id: str) -> Optional[str]:
        row = self._fetch_one("SELECT email FROM owners WHERE id = %s", (owner_id,))
        return row["email"] if row else None

    def get_interest_terms(self, owner_id: str) -> List[str]:
        rows = self._fetch_all(
            "SELECT term FROM owner_interests WHERE owner_id = %s AND is_active ORDER BY created_at",
            (owner_id,),
        )
        return [r["term"] for r in rows]

    # =========================================================================
    # Listings
    # =========================================================================

    def fetch_raw_listings(
        self,
        owner_id: str,
        search_term: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM raw_listings WHERE owner_id = %s"
        params: List[Any] = [owner_id]
        if search_term:
            sql += " AND search_term = %s"
            params.append(search_term)
        sql += " ORDER BY id"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(limit)
        return self._fetch_all(sql, params)

    def insert_clean_listings(self, listings: List[CleanListing]) -> int:
        if not listings:
            return 0

        values = [
            (
                l.id, l.run_id, l.owner_id, l.url, l.title, l.price, l.currency,
                l.is_auction, l.bid_count, l.watcher_count, l.search_term,
                l.observed_at, l.first_seen_at, l.is_active, l.image_url, l.dedupe_hash,
            )
            for l in listings
        ]

        with self.get_db_connection() as conn:
            with conn.cursor() as cur:
                inserted = execute_values(
                    cur,
                    """
                    INSERT INTO clean_listings (
                        id, run_id, owner_id, url, title, price, currency,
                        is_auction, bid_count, watcher_count, search_term,
                        observed_at, first_seen_at, is_active, image_url, dedupe_hash
                    ) VALUES %s
                    ON CONFLICT (run_id, dedupe_hash) DO NOTHING
                    RETURNING id
                    """,
                    values,
                    page_size=100,
                    fetch=True,
                )

        logger.debug(f"Inserted {len(inserted)} clean listings")
        return len(inserted)

    def get_clean_listings(self, run_id: str, owner_id: str) -> List[CleanListing]:
        rows = self._fetch_all(
            f"SELECT {CLEAN_LISTING_COLUMNS} FROM clean_listings "
            "WHERE run_id = %s AND owner_id = %s ORDER BY first_seen_at NULLS LAST, id",
            (run_id, owner_id),
        )
        return [_row_to_listing(r) for r in rows]

    def get_listings(self, listing_ids: Iterable[str]) -> Dict[str, CleanListing]:
        ids = list(listing_ids)
        if not ids:
            return {}
        rows = self._fetch_all(
            f"SELECT {CLEAN_LISTING_COLUMNS} FROM clean_listings WHERE id = ANY(%s)",
            (ids,),
        )
        return {r["id"]: _row_to_listing(r) for r in rows}

    def update_listing_score(
        self,
        listing_id: str,
        wvs_score: float,
        watch_velocity: float,
        demand_label: str,
        scored_at: datetime,
    ) -> None:
        self._execute(
            """
            UPDATE clean_listings
            SET wvs_score = %s, watch_velocity = %s, demand_label = %s, scored_at = %s
            WHERE id = %s
            """,
            (wvs_score, watch_velocity, demand_label, scored_at, listing_id),
        )

    def get_listings_missing_visuals(self, owner_id: str, limit: int) -> List[CleanListing]:
        rows = self._fetch_all(
            f"SELECT {CLEAN_LISTING_COLUMNS} FROM clean_listings "
            "WHERE owner_id = %s AND image_url IS NOT NULL AND visual_metadata IS NULL "
            "ORDER BY first_seen_at DESC NULLS LAST LIMIT %s",
            (owner_id, limit),
        )
        return [_row_to_listing(r) for r in rows]

    def save_visual_metadata(self, listing_id: str, metadata: Dict[str, Any]) -> None:
        self._execute(
            "UPDATE clean_listings SET visual_metadata = %s WHERE id = %s",
            (Json(metadata), listing_id),
        )

    # =========================================================================
    # Parsed signals
    # =========================================================================

    def insert_parsed_signals(self, signals: List[ParsedSignal]) -> int:
        if not signals:
            return 0

        values = [
            (
                s.listing_id, s.owner_id, s.width_in, s.height_in, s.size_bucket,
                s.medium, s.subject, s.style, list(s.color_tags), s.confidence, s.extractor,
            )
            for s in signals
        ]

        with self.get_db_connection() as conn:
            with conn.cursor() as cur:
                inserted = execute_values(
                    cur,
                    """
                    INSERT INTO parsed_signals (
                        listing_id, owner_id, width_in, height_in, size_bucket,
                        medium, subject, style, color_tags, confidence, extractor
                    ) VALUES %s
                    ON CONFLICT (listing_id) DO NOTHING
                    RETURNING listing_id
                    """,
                    values,
                    page_size=100,
                    fetch=True,
                )

        return len(inserted)

    def get_parsed_signals(self, listing_ids: Iterable[str]) -> Dict[str, ParsedSignal]:
        ids = list(listing_ids)
        if not ids:
            return {}
        rows = self._fetch_all(
            "SELECT * FROM parsed_signals WHERE listing_id = ANY(%s)",
            (ids,),
        )
        return {r["listing_id"]: _row_to_signal(r) for r in rows}

    # =========================================================================
    # Topics
    # =========================================================================

    def get_cluster_by_slug(self, slug: str) -> Optional[TopicCluster]:
        row = self._fetch_one("SELECT * FROM topic_clusters WHERE slug = %s", (slug,))
        return _row_to_cluster(row) if row else None

    def create_cluster(self, slug: str, label: str, run_id: str) -> Tuple[TopicCluster, bool]:
        row = self._fetch_one(
            """
            INSERT INTO topic_clusters (id, slug, label, run_id)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (slug) DO NOTHING
            RETURNING *
            """,
            (str(uuid.uuid4()), slug, label, run_id),
        )
        if row:
            return _row_to_cluster(row), True

        # Lost a race on the slug: resolve to the existing cluster
        existing = self.get_cluster_by_slug(slug)
        if existing is None:
            raise StoreError(f"Cluster '{slug}' neither inserted nor found")
        return existing, False

    def get_clusters(self, topic_ids: Iterable[str]) -> Dict[str, TopicCluster]:
        ids = list(topic_ids)
        if not ids:
            return {}
        rows = self._fetch_all("SELECT * FROM topic_clusters WHERE id = ANY(%s)", (ids,))
        return {r["id"]: _row_to_cluster(r) for r in rows}

    def insert_memberships(self, memberships: List[TopicMembership]) -> int:
        if not memberships:
            return 0

        values = [(m.run_id, m.topic_id, m.listing_id, m.weight) for m in memberships]
        with self.get_db_connection() as conn:
            with conn.cursor() as cur:
                inserted = execute_values(
                    cur,
                    """
                    INSERT INTO topic_memberships (run_id, topic_id, listing_id, weight)
                    VALUES %s
                    ON CONFLICT (run_id, topic_id, listing_id) DO NOTHING
                    RETURNING listing_id
                    """,
                    values,
                    page_size=100,
                    fetch=True,
                )
        return len(inserted)

    def get_memberships(self, run_id: str, topic_id: Optional[str] = None) -> List[TopicMembership]:
        sql = "SELECT * FROM topic_memberships WHERE run_id = %s"
        params: List[Any] = [run_id]
        if topic_id is not None:
            sql += " AND topic_id = %s"
            params.append(topic_id)
        rows = self._fetch_all(sql, params)
        return [
            TopicMembership(
                run_id=r["run_id"],
                topic_id=r["topic_id"],
                listing_id=r["listing_id"],
                weight=float(r["weight"]),
            )
            for r in rows
        ]

    # =========================================================================
    # Scores and rollups
    # =========================================================================

    def get_category_medians(self) -> Dict[str, float]:
        rows = self._fetch_all("SELECT size_bucket, median_price FROM category_medians")
        return {r["size_bucket"]: float(r["median_price"]) for r in rows}

    def upsert_topic_score(self, score: TopicScoreDaily) -> None:
        self._execute(
            """
            INSERT INTO topic_scores_daily (
                topic_id, score_date, run_id, wvs_score, velocity_score, demand_score,
                median_price, upper_quartile_price, auction_intensity, listing_count, confidence
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (topic_id, score_date) DO UPDATE SET
                run_id = EXCLUDED.run_id,
                wvs_score = EXCLUDED.wvs_score,
                velocity_score = EXCLUDED.velocity_score,
                demand_score = EXCLUDED.demand_score,
                median_price = EXCLUDED.median_price,
                upper_quartile_price = EXCLUDED.upper_quartile_price,
                auction_intensity = EXCLUDED.auction_intensity,
                listing_count = EXCLUDED.listing_count,
                confidence = EXCLUDED.confidence
            """,
            (
                score.topic_id, score.score_date, score.run_id, score.wvs_score,
                score.velocity_score, score.demand_score, score.median_price,
                score.upper_quartile_price, score.auction_intensity,
                score.listing_count, score.confidence,
            ),
        )

    def get_topic_scores(
        self,
        score_date: date,
        min_confidence: float = 0.0,
        limit: Optional[int] = None,
        topic_ids: Optional[Iterable[str]] = None,
    ) -> List[TopicScoreDaily]:
        sql = """
            SELECT s.*, c.label AS topic_label
            FROM topic_scores_daily s
            JOIN topic_clusters c ON c.id = s.topic_id
            WHERE s.score_date = %s AND s.confidence >= %s
        """
        params: List[Any] = [score_date, min_confidence]
        if topic_ids is not None:
            sql += " AND s.topic_id = ANY(%s)"
            params.append(list(topic_ids))
        sql += " ORDER BY s.wvs_score DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(limit)
        return [_row_to_topic_score(r) for r in self._fetch_all(sql, params)]

    def _upsert_rollup(self, table: str, key_column: str, key: str, rollup: Any) -> None:
        self._execute(
            f"""
            INSERT INTO {table} ({key_column}, avg_wvs, avg_price, listing_count, demand_score, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT ({key_column}) DO UPDATE SET
                avg_wvs = EXCLUDED.avg_wvs,
                avg_price = EXCLUDED.avg_price,
                listing_count = EXCLUDED.listing_count,
                demand_score = EXCLUDED.demand_score,
                updated_at = EXCLUDED.updated_at
            """,
            (key, rollup.avg_wvs, rollup.avg_price, rollup.listing_count,
             rollup.demand_score, rollup.updated_at),
        )

    def upsert_style_rollup(self, rollup: StyleRollup) -> None:
        self._upsert_rollup("style_rollups", "style_term", rollup.style_term, rollup)

    def upsert_size_rollup(self, rollup: SizeRollup) -> None:
        self._upsert_rollup("size_rollups", "size_bucket", rollup.size_bucket, rollup)

    def get_style_rollups(self, limit: int = 10) -> List[StyleRollup]:
        rows = self._fetch_all(
            "SELECT * FROM style_rollups ORDER BY avg_wvs DESC LIMIT %s", (limit,)
        )
        return [
            StyleRollup(
                style_term=r["style_term"],
                avg_wvs=float(r["avg_wvs"]),
                avg_price=float(r["avg_price"]),
                listing_count=r["listing_count"],
                demand_score=float(r["demand_score"]),
                updated_at=r["updated_at"],
            )
            for r in rows
        ]

    def get_size_rollups(self, limit: int = 10) -> List[SizeRollup]:
        rows = self._fetch_all(
            "SELECT * FROM size_rollups ORDER BY avg_wvs DESC LIMIT %s", (limit,)
        )
        return [
            SizeRollup(
                size_bucket=r["size_bucket"],
                avg_wvs=float(r["avg_wvs"]),
                avg_price=float(r["avg_price"]),
                listing_count=r["listing_count"],
                demand_score=float(r["demand_score"]),
                updated_at=r["updated_at"],
            )
            for r in rows
        ]

    def refresh_global_benchmarks(self) -> bool:
        self._execute("SELECT refresh_global_benchmarks()")
        return True

    # =========================================================================
    # Opportunity feed
    # =========================================================================

    def upsert_opportunity(self, opportunity: Opportunity) -> None:
        o = opportunity
        self._execute(
            """
            INSERT INTO opportunities (
                owner_id, opportunity_date, rank, run_id, topic_id, topic_label,
                wvs_score, velocity_score, price_band, recommended_sizes,
                recommended_mediums, keyword_stack, evidence_urls,
                format_recommendation, confidence
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (owner_id, opportunity_date, rank) DO UPDATE SET
                run_id = EXCLUDED.run_id,
                topic_id = EXCLUDED.topic_id,
                topic_label = EXCLUDED.topic_label,
                wvs_score = EXCLUDED.wvs_score,
                velocity_score = EXCLUDED.velocity_score,
                price_band = EXCLUDED.price_band,
                recommended_sizes = EXCLUDED.recommended_sizes,
                recommended_mediums = EXCLUDED.recommended_mediums,
                keyword_stack = EXCLUDED.keyword_stack,
                evidence_urls = EXCLUDED.evidence_urls,
                format_recommendation = EXCLUDED.format_recommendation,
                confidence = EXCLUDED.confidence
            """,
            (
                o.owner_id, o.opportunity_date, o.rank, o.run_id, o.topic_id,
                o.topic_label, o.wvs_score, o.velocity_score, Json(o.price_band.to_dict()),
                list(o.recommended_sizes), list(o.recommended_mediums),
                list(o.keyword_stack), list(o.evidence_urls),
                o.format_recommendation, o.confidence,
            ),
        )

    def get_opportunities(self, owner_id: str, opportunity_date: date) -> List[Opportunity]:
        rows = self._fetch_all(
            """
            SELECT * FROM opportunities
            WHERE owner_id = %s AND opportunity_date = %s
            ORDER BY rank
            """,
            (owner_id, opportunity_date),
        )
        return [_row_to_opportunity(r) for r in rows]

    def create_notification(self, notification: Notification) -> None:
        n = notification
        self._execute(
            """
            INSERT INTO notifications (owner_id, type, title, message, action_url, created_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            """,
            (n.owner_id, n.type, n.title, n.message, n.action_url, n.created_at),
        )
