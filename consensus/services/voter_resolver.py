"""
Voter Set Resolver

Normalizes individual, group and channel-wide voter references into one
deduplicated eligible-voter set.

Resolution either produces the complete set or fails: any membership
lookup failure raises ``DependencyError`` and an oversized set raises
``ValidationError``. Nothing is persisted here, so callers never see a
partial voter set.
"""

import asyncio
from dataclasses import dataclass, field

import structlog

from consensus.config import get_settings
from consensus.errors import ConsensusError, DependencyError, ValidationError
from consensus.monitoring.logging import log_duration
from consensus.services.directory import MembershipDirectory, PageFetcher, iter_member_pages
from consensus.services.parsing import parse_group_references, parse_user_ids

logger = structlog.get_logger(__name__)


@dataclass
class ResolvedVoterSet:
    """Outcome of voter resolution."""

    voter_ids: list[str] = field(default_factory=list)
    group_ids: list[str] = field(default_factory=list)
    unresolved_handles: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.voter_ids)


class VoterSetResolver:
    """Expands voter references through a membership directory."""

    def __init__(
        self,
        directory: MembershipDirectory,
        max_voters: int | None = None,
        system_account_ids: list[str] | None = None,
        lookup_concurrency: int | None = None,
    ) -> None:
        settings = get_settings()
        self._directory = directory
        self._max_voters = max_voters if max_voters is not None else settings.max_voters
        self._system_accounts = frozenset(
            system_account_ids if system_account_ids is not None else settings.system_account_ids
        )
        self._lookup_concurrency = (
            lookup_concurrency
            if lookup_concurrency is not None
            else settings.membership_lookup_concurrency
        )
        self._logger = logger.bind(component="voter_resolver")

    async def resolve(
        self,
        users: str | list[str] | None = None,
        groups: str | list[str] | None = None,
        include_channel: bool = False,
        channel_id: str | None = None,
        resolve_handles: bool = True,
    ) -> ResolvedVoterSet:
        """
        Resolve all voter references into a deduplicated id list.

        Args:
            users: Individual user references (text or pre-parsed list)
            groups: Group references (text or pre-parsed list)
            include_channel: Add every human member of ``channel_id``
            channel_id: Channel to expand when ``include_channel`` is set
            resolve_handles: Try to resolve ``@handle`` groups via the directory

        Returns:
            ResolvedVoterSet; handles that could not be resolved are listed in
            ``unresolved_handles`` and contribute no members.

        Raises:
            ValidationError: Voter set exceeds the maximum, or channel missing
            DependencyError: A membership lookup failed
        """
        if include_channel and not channel_id:
            raise ValidationError("Channel expansion requested without a channel id")

        voters: dict[str, None] = dict.fromkeys(parse_user_ids(users))
        parsed_groups = parse_group_references(groups)
        group_ids = list(parsed_groups.ids)
        unresolved: list[str] = []

        with log_duration(self._logger, "voter_resolution", level="debug"):
            for handle in parsed_groups.handles:
                group_id = await self._resolve_handle(handle) if resolve_handles else None
                if group_id is None:
                    unresolved.append(handle)
                elif group_id not in group_ids:
                    group_ids.append(group_id)

            for group_id in group_ids:
                async for batch in self._pages(self._directory.fetch_group_members, group_id):
                    voters.update(dict.fromkeys(batch))
                    self._check_limit(len(voters))

            if include_channel and channel_id:
                async for batch in self._pages(self._directory.fetch_channel_members, channel_id):
                    for member in await self._humans(batch):
                        voters[member] = None
                    self._check_limit(len(voters))

        self._check_limit(len(voters))

        self._logger.info(
            "voters_resolved",
            voter_count=len(voters),
            group_count=len(group_ids),
            channel_expanded=include_channel,
            unresolved_handles=unresolved,
        )
        return ResolvedVoterSet(
            voter_ids=list(voters),
            group_ids=group_ids,
            unresolved_handles=unresolved,
        )

    def _check_limit(self, size: int) -> None:
        if size > self._max_voters:
            self._logger.warning(
                "voter_limit_exceeded",
                voter_count=size,
                max_voters=self._max_voters,
            )
            raise ValidationError(
                f"Voter set exceeds the maximum of {self._max_voters} voters",
                voter_count=size,
                max_voters=self._max_voters,
            )

    async def _pages(self, fetch: PageFetcher, source_id: str):
        """Wrap directory pagination so that any lookup failure is a DependencyError."""
        pages = iter_member_pages(fetch, source_id)
        while True:
            try:
                batch = await anext(pages)
            except StopAsyncIteration:
                return
            except ConsensusError:
                raise
            except Exception as e:
                self._logger.error("membership_lookup_failed", source_id=source_id, error=str(e))
                raise DependencyError(
                    f"Membership lookup for {source_id} failed: {e}",
                    source_id=source_id,
                ) from e
            yield batch

    async def _humans(self, members: list[str]) -> list[str]:
        """Drop system accounts and bots from a batch of channel members."""
        candidates = [m for m in members if m not in self._system_accounts]
        # at most lookup_concurrency account lookups in flight
        semaphore = asyncio.Semaphore(self._lookup_concurrency)

        async def is_bot(member: str) -> bool:
            async with semaphore:
                return await self._directory.is_bot_account(member)

        try:
            bot_flags = await asyncio.gather(*(is_bot(m) for m in candidates))
        except ConsensusError:
            raise
        except Exception as e:
            raise DependencyError(f"Account lookup failed: {e}") from e
        return [m for m, flagged in zip(candidates, bot_flags) if not flagged]

    async def _resolve_handle(self, handle: str) -> str | None:
        try:
            return await self._directory.find_group_by_handle(handle)
        except ConsensusError:
            raise
        except Exception as e:
            raise DependencyError(f"Group handle lookup for @{handle} failed: {e}") from e
