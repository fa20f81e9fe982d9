"""Reconciliation engine for config sets.

The engine applies a desired object list against a remote object store,
tracks which objects belong to a set across runs, prunes objects that
left the set, and deletes whole sets.

Results are produced lazily: iter_apply() and iter_delete() return
generators that yield one ObjectResult per object as soon as it has been
processed. apply() and delete() drain them into a RunOutcome.

Failure semantics:
- Per-object errors (get/apply/delete) are recorded on the result and the
  run continues. Once a run has a per-object error nothing more is pruned,
  and every previously tracked resource that was not confirmed applied or
  pruned is carried into the new record. When the stream is exhausted a
  PartialFailureError is raised.
- State store errors (StateStoreError) abort the run immediately.

Runs are sequential and assume at most one in-flight run per set name.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from configset.models.resource import ResourceRef, object_metadata
from configset.models.result import ObjectAction, ObjectResult, RunOutcome
from configset.models.set_info import create_set_info, validate_set_name
from configset.remote.base import (
    DEFAULT_FIELD_OWNER,
    ApplyOptions,
    NotFoundError,
    RemoteError,
    RemoteObjectClient,
)
from configset.store.base import SetInfoStore

logger = logging.getLogger(__name__)


class PartialFailureError(Exception):
    """Raised after a run in which at least one object operation failed.

    Attributes:
        outcome: All results of the run, including the failed ones.
    """

    def __init__(self, outcome: RunOutcome) -> None:
        failed = len(outcome.failed)
        super().__init__(f"Failed to operate {failed} of {len(outcome)} resource(s)")
        self.outcome = outcome


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Options for an apply or delete run.

    Attributes:
        dry_run: Run all decision logic without persisting remote or state changes.
        force_conflicts: Take ownership of fields owned by other writers (apply only).
    """

    dry_run: bool = False
    force_conflicts: bool = False


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReconciliationEngine:
    """Applies and deletes config sets.

    Attributes:
        field_owner: Owner token recorded on every applied field.

    Example:
        >>> engine = ReconciliationEngine(client, store)
        >>> for result in engine.iter_apply("web", objects):
        ...     print(result.action.value, result.ref.display_name)
    """

    def __init__(
        self,
        client: RemoteObjectClient,
        store: SetInfoStore,
        field_owner: str = DEFAULT_FIELD_OWNER,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            client: Remote object client used for get/apply/delete.
            store: State store holding the set records.
            field_owner: Owner token for server-side apply.
            clock: Source of the run's wall-clock time. Defaults to UTC now.
        """
        self._client = client
        self._store = store
        self._field_owner = field_owner
        self._clock = clock or _utcnow

    @property
    def field_owner(self) -> str:
        """Owner token recorded on every applied field."""
        return self._field_owner

    # -------------------------------------------------------------------------
    # Apply
    # -------------------------------------------------------------------------

    def iter_apply(
        self,
        name: str,
        objects: Iterable[dict[str, Any]],
        options: RunOptions | None = None,
    ) -> Iterator[ObjectResult]:
        """Apply a set and stream the per-object results.

        Objects are applied in the given order, previously tracked objects
        that are no longer desired are pruned in reverse tracked order, and
        the new record is written (unless dry-run).

        Args:
            name: Config set name.
            objects: Desired objects in dependency order.
            options: Run options.

        Returns:
            Generator of ObjectResult, one per applied or pruned object.

        Raises:
            ValueError: If the set name is invalid.
            StateStoreError: While iterating, if the record cannot be read or written.
            PartialFailureError: When the generator is exhausted, if any object failed.
        """
        validate_set_name(name)
        return self._run_apply(name, list(objects), options or RunOptions())

    def apply(
        self,
        name: str,
        objects: Iterable[dict[str, Any]],
        options: RunOptions | None = None,
    ) -> RunOutcome:
        """Apply a set and collect all results.

        Raises:
            ValueError: If the set name is invalid.
            StateStoreError: If the record cannot be read or written.
            PartialFailureError: If any object operation failed.
        """
        return RunOutcome(tuple(self.iter_apply(name, objects, options)))

    def _run_apply(
        self,
        name: str,
        objects: list[dict[str, Any]],
        options: RunOptions,
    ) -> Iterator[ObjectResult]:
        started = self._clock()
        apply_options = ApplyOptions(
            field_owner=self._field_owner,
            dry_run=options.dry_run,
            force_conflicts=options.force_conflicts,
        )

        results: list[ObjectResult] = []
        applied: list[ResourceRef] = []
        applied_uids: set[str] = set()
        had_errors = False

        for obj in objects:
            result, ref = self._apply_object(obj, apply_options)
            results.append(result)
            if ref is None:
                had_errors = True
            elif not ref.uid or ref.uid not in applied_uids:
                applied.append(ref)
                if ref.uid:
                    applied_uids.add(ref.uid)
            self._log_result(result)
            yield result

        previous = self._store.get(name)
        previous_resources = previous.resources if previous is not None else ()
        candidates = self._prune_candidates(previous_resources, applied)

        pruned: set[ResourceRef] = set()
        if not had_errors:
            for ref in reversed(candidates):
                result = self._delete_ref(ref, options.dry_run)
                results.append(result)
                if result.failed:
                    had_errors = True
                else:
                    pruned.add(ref)
                self._log_result(result)
                yield result

        if had_errors:
            # Keep everything not confirmed handled so a retry can finish the job.
            carried = [ref for ref in candidates if ref not in pruned]
            resources = applied + carried
            if carried:
                logger.info(
                    "Carrying %d unconfirmed resource(s) forward in set %s",
                    len(carried),
                    name,
                )
        else:
            resources = applied

        info = create_set_info(name, resources, now=started)
        if options.dry_run:
            logger.debug("Dry run: not writing set info %s", name)
        elif previous is None:
            self._store.create(name, info)
        else:
            self._store.update(name, info)

        outcome = RunOutcome(tuple(results))
        if had_errors:
            raise PartialFailureError(outcome)

    @staticmethod
    def _prune_candidates(
        previous: tuple[ResourceRef, ...],
        applied: list[ResourceRef],
    ) -> list[ResourceRef]:
        """Return previously tracked refs that this run did not apply.

        Refs match by uid. When either side has no uid, matching
        coordinates count as the same object.
        """
        applied_uids = {ref.uid for ref in applied if ref.uid}
        applied_coordinates = {ref.coordinates: ref.uid for ref in applied}

        candidates: list[ResourceRef] = []
        for ref in previous:
            if ref.uid in applied_uids:
                continue
            match = applied_coordinates.get(ref.coordinates)
            if match is not None and not (ref.uid and match):
                continue
            candidates.append(ref)
        return candidates

    def _apply_object(
        self,
        obj: dict[str, Any],
        options: ApplyOptions,
    ) -> tuple[ObjectResult, ResourceRef | None]:
        """Apply one object.

        Returns:
            Tuple of (result, post-apply ref). The ref is None on failure.
        """
        config = copy.deepcopy(obj)
        try:
            ref = ResourceRef.from_object(obj)
        except ValueError as e:
            return ObjectResult(action=ObjectAction.UPDATE, config=config, error=e), None

        try:
            live: dict[str, Any] | None = self._client.get(ref)
        except NotFoundError:
            live = None
        except RemoteError as e:
            return ObjectResult(action=ObjectAction.UPDATE, config=config, error=e), None

        try:
            updated = self._client.apply(obj, options)
        except RemoteError as e:
            result = ObjectResult(
                action=ObjectAction.UPDATE,
                config=config,
                live=live,
                error=e,
            )
            return result, None

        uid = str(object_metadata(updated).get("uid") or "")
        result = ObjectResult(
            action=ObjectAction.UPDATE,
            config=config,
            live=live,
            updated=updated,
        )
        return result, dataclasses.replace(ref, uid=uid)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def iter_delete(self, name: str, options: RunOptions | None = None) -> Iterator[ObjectResult]:
        """Delete a set and stream the per-object results.

        Tracked objects are deleted in reverse tracked order. The record is
        removed only if every deletion succeeded (and not on dry-run).

        Args:
            name: Config set name.
            options: Run options. force_conflicts is ignored.

        Returns:
            Generator of ObjectResult, one per tracked object.

        Raises:
            ValueError: If the set name is invalid.
            StateStoreError: While iterating, if the record cannot be read or removed.
            PartialFailureError: When the generator is exhausted, if any deletion failed.
        """
        validate_set_name(name)
        return self._run_delete(name, options or RunOptions())

    def delete(self, name: str, options: RunOptions | None = None) -> RunOutcome:
        """Delete a set and collect all results.

        Raises:
            ValueError: If the set name is invalid.
            StateStoreError: If the record cannot be read or removed.
            PartialFailureError: If any deletion failed.
        """
        return RunOutcome(tuple(self.iter_delete(name, options)))

    def _run_delete(self, name: str, options: RunOptions) -> Iterator[ObjectResult]:
        info = self._store.get(name)
        if info is None:
            logger.info("Config set %s has no record, nothing to delete", name)
            return

        results: list[ObjectResult] = []
        for ref in reversed(info.resources):
            result = self._delete_ref(ref, options.dry_run)
            results.append(result)
            self._log_result(result)
            yield result

        outcome = RunOutcome(tuple(results))
        if outcome.had_errors:
            # Leave the record untouched so a retry sees the full resource list.
            raise PartialFailureError(outcome)

        if options.dry_run:
            logger.debug("Dry run: not deleting set info %s", name)
        else:
            self._store.delete(name)

    def _delete_ref(self, ref: ResourceRef, dry_run: bool) -> ObjectResult:
        """Delete one tracked object, treating an absent object as deleted."""
        config = ref.to_stub()
        try:
            live: dict[str, Any] | None = self._client.get(ref)
        except NotFoundError:
            live = None
        except RemoteError as e:
            return ObjectResult(action=ObjectAction.DELETE, config=config, error=e)

        if live is None:
            return ObjectResult(action=ObjectAction.DELETE, config=config)

        live_uid = str(object_metadata(live).get("uid") or "")
        if ref.uid and live_uid and live_uid != ref.uid:
            # The tracked object is gone and its name now belongs to another object.
            logger.info(
                "Skipping %s %s: uid %s no longer exists (found %s)",
                ref.kind,
                ref.display_name,
                ref.uid,
                live_uid,
            )
            return ObjectResult(action=ObjectAction.DELETE, config=config)

        try:
            self._client.delete(ref, dry_run=dry_run)
        except NotFoundError:
            pass
        except RemoteError as e:
            return ObjectResult(action=ObjectAction.DELETE, config=config, live=live, error=e)

        return ObjectResult(action=ObjectAction.DELETE, config=config, live=live)

    @staticmethod
    def _log_result(result: ObjectResult) -> None:
        api_version, kind, namespace, name = result.coordinates
        if result.failed:
            logger.info(
                "%s: ns=%s name=%s apiVersion=%s kind=%s: %s",
                result.action.value,
                namespace,
                name,
                api_version,
                kind,
                result.error,
            )
        else:
            logger.debug(
                "%s: ns=%s name=%s apiVersion=%s kind=%s: ok",
                result.action.value,
                namespace,
                name,
                api_version,
                kind,
            )
