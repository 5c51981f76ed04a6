"""
Blueprint bulk importer

Replaces a certification's whole domain → objective → bullet → sub-bullet
hierarchy inside one transaction, with one INSERT per level instead of one
per row. A 10 × 10 × 5 × 3 blueprint is ~1,850 rows but only a handful of
round trips.

Generated IDs are recovered one of two ways:
  returning   INSERT ... RETURNING id, executemany sorted by parameter order
  positional  re-read the level scoped to the certification, grouped by parent
              and sorted by `order`, then zipped with the source siblings

Positional matching needs sibling `order` values to be unique, so the input
is checked for that before the transaction opens.
"""

import logging
import math
import os
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import delete, func, insert, select, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from database.models import Bullet, Certification, Domain, Objective, SubBullet
from database.schemas import DomainImport
from services.errors import (
    BlueprintError,
    BlueprintValidationError,
    ConstraintError,
    DataStoreError,
    ImportTimeoutError,
    NotFoundError,
)

log = logging.getLogger(__name__)

# ─── Config ────────────────────────────────────────────────────────────────────

IMPORT_TIMEOUT_SECONDS = float(os.getenv("BLUEPRINT_IMPORT_TIMEOUT_SECONDS", "30"))
ID_STRATEGY = os.getenv("BLUEPRINT_ID_STRATEGY", "auto")
ID_STRATEGIES = ("auto", "returning", "positional")

# First key of pg_advisory_xact_lock(int, int); second key is the certification id
ADVISORY_LOCK_NAMESPACE = 7301

# Domain weights must total 100% ± 0.5 for a certification to stay active
WEIGHT_MIN_PERCENTAGE = 99.5
WEIGHT_MAX_PERCENTAGE = 100.5


@dataclass
class ImportResult:
    domains_created: int
    objectives_created: int
    bullets_created: int
    sub_bullets_created: int
    total_weight_percentage: float
    weights_valid: bool
    certification_deactivated: bool

    def as_dict(self) -> dict:
        return {
            "domains_created": self.domains_created,
            "objectives_created": self.objectives_created,
            "bullets_created": self.bullets_created,
            "sub_bullets_created": self.sub_bullets_created,
            "total_weight_percentage": self.total_weight_percentage,
            "weights_valid": self.weights_valid,
            "certification_deactivated": self.certification_deactivated,
        }


@dataclass
class WeightSummary:
    total_percentage: float
    is_valid: bool


def summarize_weights(weights: Sequence[float]) -> WeightSummary:
    """Sum fractional weights into a percentage rounded to one decimal (half up)."""
    total = sum(w or 0.0 for w in weights)
    percentage = math.floor(total * 1000 + 0.5) / 10
    return WeightSummary(
        total_percentage=percentage,
        is_valid=WEIGHT_MIN_PERCENTAGE <= percentage <= WEIGHT_MAX_PERCENTAGE,
    )


# ─── Input checks ──────────────────────────────────────────────────────────────

def _check_unique_orders(siblings: Sequence, scope: str) -> None:
    seen = set()
    for item in siblings:
        if item.order in seen:
            raise BlueprintValidationError(
                f"Duplicate order {item.order} among {scope}; sibling orders must be unique"
            )
        seen.add(item.order)


def check_sibling_orders(domains: Sequence[DomainImport]) -> None:
    """Reject a blueprint where two siblings share an `order` value."""
    _check_unique_orders(domains, "domains")
    for domain in domains:
        _check_unique_orders(domain.objectives, f"objectives of domain '{domain.name}'")
        for objective in domain.objectives:
            _check_unique_orders(objective.bullets, f"bullets of objective {objective.code}")
            for bullet in objective.bullets:
                _check_unique_orders(
                    bullet.sub_bullets,
                    f"sub-bullets of objective {objective.code} bullet {bullet.order}",
                )


def coerce_domains(domains: Sequence) -> List[DomainImport]:
    """Accept DomainImport models or raw dicts; validation failures become BlueprintValidationError."""
    try:
        return [
            d if isinstance(d, DomainImport) else DomainImport.model_validate(d)
            for d in domains
        ]
    except ValidationError as e:
        raise BlueprintValidationError(f"Invalid blueprint payload: {e}") from e


# ─── Level descriptions ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class _Level:
    label: str
    model: type
    parent_key: str
    to_row: Callable[[object], dict]
    children_of: Optional[Callable[[object], list]]
    # joins needed to reach Domain.certification_id from this model
    scope_joins: tuple


LEVELS = (
    _Level(
        label="domains",
        model=Domain,
        parent_key="certification_id",
        to_row=lambda d: {"name": d.name, "weight": d.weight, "order": d.order},
        children_of=lambda d: d.objectives,
        scope_joins=(),
    ),
    _Level(
        label="objectives",
        model=Objective,
        parent_key="domain_id",
        to_row=lambda o: {
            "code": o.code,
            "description": o.description,
            "difficulty": o.difficulty.value,
            "order": o.order,
        },
        children_of=lambda o: o.bullets,
        scope_joins=((Domain, Objective.domain_id == Domain.id),),
    ),
    _Level(
        label="bullets",
        model=Bullet,
        parent_key="objective_id",
        to_row=lambda b: {"text": b.text, "order": b.order},
        children_of=lambda b: b.sub_bullets,
        scope_joins=(
            (Objective, Bullet.objective_id == Objective.id),
            (Domain, Objective.domain_id == Domain.id),
        ),
    ),
    _Level(
        label="sub_bullets",
        model=SubBullet,
        parent_key="bullet_id",
        to_row=lambda s: {"text": s.text, "order": s.order},
        children_of=None,
        scope_joins=(
            (Bullet, SubBullet.bullet_id == Bullet.id),
            (Objective, Bullet.objective_id == Objective.id),
            (Domain, Objective.domain_id == Domain.id),
        ),
    ),
)


# ─── Importer ──────────────────────────────────────────────────────────────────

class BlueprintImporter:
    """
    Destructive, all-or-nothing replacement of one certification's blueprint.

    The session's current transaction is used and committed at the end; any
    failure rolls it back, so no partial tree is ever visible.
    """

    def __init__(
        self,
        db: Session,
        timeout_seconds: Optional[float] = None,
        id_strategy: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        strategy = (id_strategy or ID_STRATEGY).strip().lower()
        if strategy not in ID_STRATEGIES:
            raise ValueError(f"Unknown id strategy '{strategy}', expected one of {ID_STRATEGIES}")
        self.db = db
        self.timeout_seconds = IMPORT_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        self.requested_strategy = strategy
        self.clock = clock
        self._deadline = 0.0
        self._strategy = "positional"

    # ── public ──

    def run(self, certification_id: int, domains: Sequence) -> ImportResult:
        """Replace the blueprint of an existing certification."""
        return self._transact(str(certification_id), domains, lambda: certification_id)

    def create(self, certification: Certification, domains: Sequence) -> ImportResult:
        """
        Insert a new certification and its blueprint under a single commit.
        If the import fails the certification is rolled back with it.
        """
        def add_certification() -> int:
            self.db.add(certification)
            self.db.flush()
            return certification.id

        return self._transact(certification.code, domains, add_certification)

    def _transact(self, target: str, domains: Sequence, resolve_certification: Callable[[], int]) -> ImportResult:
        domains = coerce_domains(domains)
        check_sibling_orders(domains)

        self._strategy = self._resolve_id_strategy()
        self._deadline = self.clock() + self.timeout_seconds
        log.info(
            "Importing blueprint for certification %s (%d domains, id strategy: %s)",
            target, len(domains), self._strategy,
        )

        try:
            self._apply_statement_timeout()
            result = self._import(resolve_certification(), domains)
            self._check_deadline("commit")
            self.db.commit()
        except BlueprintError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            log.exception("Blueprint import for certification %s violated a constraint", target)
            raise ConstraintError(f"Blueprint import violated a database constraint: {e.orig}") from e
        except OperationalError as e:
            self.db.rollback()
            if _is_timeout(e):
                log.exception("Blueprint import for certification %s timed out", target)
                raise ImportTimeoutError(
                    f"Blueprint import exceeded {self.timeout_seconds:g}s and was rolled back"
                ) from e
            log.exception("Blueprint import for certification %s lost the database", target)
            raise DataStoreError(f"Database unavailable during blueprint import: {e.orig}") from e
        except DBAPIError as e:
            self.db.rollback()
            log.exception("Blueprint import for certification %s failed in the driver", target)
            raise DataStoreError(f"Database error during blueprint import: {e.orig}") from e
        except Exception:
            self.db.rollback()
            raise

        log.info(
            "Imported %d domains, %d objectives, %d bullets, %d sub-bullets for certification %s",
            result.domains_created, result.objectives_created,
            result.bullets_created, result.sub_bullets_created, target,
        )
        return result

    # ── transaction body ──

    def _import(self, certification_id: int, domains: List[DomainImport]) -> ImportResult:
        certification = self._lock_certification(certification_id)

        self.db.execute(
            delete(Domain)
            .where(Domain.certification_id == certification_id)
            .execution_options(synchronize_session=False)
        )
        self._check_deadline("delete")

        counts: Dict[str, int] = {}
        parent_ids: List[int] = [certification_id]
        groups: List[list] = [list(domains)]
        for level in LEVELS:
            ids, items = self._create_level(certification_id, level, parent_ids, groups)
            counts[level.label] = len(items)
            self._check_deadline(level.label)
            if level.children_of is None:
                break
            parent_ids = ids
            groups = [list(level.children_of(item)) for item in items]

        weights = summarize_weights([d.weight for d in domains])
        deactivated = False
        if not weights.is_valid:
            certification.is_active = False
            deactivated = True
            log.warning(
                "Domain weights for certification %s total %.1f%%; certification forced inactive",
                certification_id, weights.total_percentage,
            )
        self.db.flush()

        return ImportResult(
            domains_created=counts.get("domains", 0),
            objectives_created=counts.get("objectives", 0),
            bullets_created=counts.get("bullets", 0),
            sub_bullets_created=counts.get("sub_bullets", 0),
            total_weight_percentage=weights.total_percentage,
            weights_valid=weights.is_valid,
            certification_deactivated=deactivated,
        )

    def _create_level(self, certification_id: int, level: _Level, parent_ids: List[int], groups: List[list]):
        rows = []
        items = []
        for parent_id, siblings in zip(parent_ids, groups):
            for item in siblings:
                rows.append({level.parent_key: parent_id, **level.to_row(item)})
                items.append(item)
        if not rows:
            return [], []

        if self._strategy == "returning":
            stmt = insert(level.model).returning(level.model.id, sort_by_parameter_order=True)
            ids = list(self.db.execute(stmt, rows).scalars())
        else:
            self.db.execute(insert(level.model), rows)
            ids = self._rematch(certification_id, level, parent_ids, groups)

        if len(ids) != len(rows):
            raise ConstraintError(
                f"Inserted {len(rows)} {level.label} but recovered {len(ids)} ids"
            )
        return ids, items

    def _rematch(self, certification_id: int, level: _Level, parent_ids: List[int], groups: List[list]) -> List[int]:
        model = level.model
        parent_column = getattr(model, level.parent_key)
        stmt = select(model.id, parent_column)
        for target, onclause in level.scope_joins:
            stmt = stmt.join(target, onclause)
        stmt = stmt.where(Domain.certification_id == certification_id).order_by(
            parent_column, model.order, model.id
        )

        created = defaultdict(list)
        for row_id, parent_id in self.db.execute(stmt):
            created[parent_id].append(row_id)

        ids: List[int] = []
        for parent_id, siblings in zip(parent_ids, groups):
            found = created.get(parent_id, [])
            if len(found) != len(siblings):
                raise ConstraintError(
                    f"Expected {len(siblings)} {level.label} under parent {parent_id}, found {len(found)}"
                )
            # found is sorted by order; line source siblings up the same way
            resolved = [0] * len(siblings)
            by_order = sorted(range(len(siblings)), key=lambda i: siblings[i].order)
            for index, row_id in zip(by_order, found):
                resolved[index] = row_id
            ids.extend(resolved)
        return ids

    # ── helpers ──

    def _resolve_id_strategy(self) -> str:
        dialect = self.db.get_bind().dialect
        supported = bool(getattr(dialect, "insert_executemany_returning_sort_by_parameter_order", False))
        if self.requested_strategy == "positional":
            return "positional"
        if supported:
            return "returning"
        if self.requested_strategy == "returning":
            log.warning("Dialect %s cannot return ordered ids from executemany; using positional", dialect.name)
        return "positional"

    def _apply_statement_timeout(self) -> None:
        if self.db.get_bind().dialect.name == "postgresql":
            timeout_ms = int(self.timeout_seconds * 1000)
            self.db.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))

    def _lock_certification(self, certification_id: int) -> Certification:
        """Serialize imports of the same certification and confirm it exists."""
        if self.db.get_bind().dialect.name == "postgresql":
            self.db.execute(select(func.pg_advisory_xact_lock(ADVISORY_LOCK_NAMESPACE, certification_id)))

        certification = self.db.execute(
            select(Certification).where(Certification.id == certification_id).with_for_update()
        ).scalar_one_or_none()
        if certification is None:
            raise NotFoundError(f"Certification with ID {certification_id} not found")
        return certification

    def _check_deadline(self, step: str) -> None:
        if self.clock() > self._deadline:
            raise ImportTimeoutError(
                f"Blueprint import exceeded {self.timeout_seconds:g}s during {step} and was rolled back"
            )


def _is_timeout(error: OperationalError) -> bool:
    message = str(error.orig).lower()
    return any(marker in message for marker in ("timeout", "canceling statement", "database is locked"))


def import_blueprint(db: Session, certification_id: int, domains: Sequence, **options) -> ImportResult:
    """Convenience wrapper: BlueprintImporter(db, **options).run(...)"""
    return BlueprintImporter(db, **options).run(certification_id, domains)


def create_certification_with_blueprint(
    db: Session, certification: Certification, domains: Sequence, **options
) -> ImportResult:
    """Convenience wrapper: BlueprintImporter(db, **options).create(...)"""
    return BlueprintImporter(db, **options).create(certification, domains)
