import unittest

from raftprobe.cluster import probes
from raftprobe.core.constants import LeaderStatus
from raftprobe.core.errors import NotFound, Unreachable
from raftprobe.core.opid import LogPosition

from tests.fake_cluster import ClusterTestCase


class TestStateProbes(ClusterTestCase):
    """Test single-shot probes against fake tablet servers."""

    async def test_last_log_position(self):
        position = await probes.get_last_log_position(self.leader, self.TABLET_ID, timeout=1)
        self.assertEqual(position, LogPosition.MINIMUM)

        self.group.append()
        position = await probes.get_last_log_position(self.directory['ts-2'], self.TABLET_ID, timeout=1)
        self.assertEqual(position, LogPosition(1, 1))

    async def test_unhosted_tablet_is_not_found(self):
        """Probing a tablet the replica does not host is NotFound, not Unreachable."""
        with self.assertRaises(NotFound):
            await probes.get_last_log_position(self.leader, 'other-tablet', timeout=1)

        status = await probes.get_leader_status(self.leader, 'other-tablet', timeout=1)
        self.assertEqual(status, LeaderStatus.NOT_FOUND)

    async def test_unresponsive_replica_is_unreachable(self):
        self.cluster.servers['ts-1'].unresponsive = True

        with self.assertRaises(Unreachable):
            await probes.get_last_log_position(self.directory['ts-1'], self.TABLET_ID, timeout=0.2)
        with self.assertRaises(Unreachable):
            await probes.get_leader_status(self.directory['ts-1'], self.TABLET_ID, timeout=0.2)

    async def test_for_each(self):
        self.group.append()
        self.group.append()

        positions = await probes.get_last_log_position_for_each(self.TABLET_ID, self.replicas, timeout=1)

        self.assertEqual(positions, {
            'ts-0': LogPosition(1, 2),
            'ts-1': LogPosition(1, 2),
            'ts-2': LogPosition(1, 2),
        })
        self.assertEqual(await probes.get_last_log_position_for_each(self.TABLET_ID, [], timeout=1), {})

    async def test_for_each_fails_fast(self):
        """One unreachable replica fails the whole batch."""
        self.cluster.servers['ts-2'].unresponsive = True

        with self.assertRaises(Unreachable):
            await probes.get_last_log_position_for_each(self.TABLET_ID, self.replicas, timeout=0.2, max_fanout=2)

    async def test_for_each_reports_first_failure_in_replica_order(self):
        del self.cluster.servers['ts-1'].tablets[self.TABLET_ID]
        self.cluster.servers['ts-2'].unresponsive = True

        with self.assertRaises(NotFound):
            await probes.get_last_log_position_for_each(self.TABLET_ID, self.replicas, timeout=0.2)

    async def test_consensus_snapshot(self):
        snapshot = await probes.get_consensus_snapshot(self.directory['ts-1'], self.TABLET_ID, timeout=1)

        self.assertEqual(snapshot.leader_uuid, 'ts-0')
        self.assertEqual(snapshot.voter_count, 3)
        self.assertEqual(snapshot.current_term, 1)

    async def test_leader_status(self):
        statuses = [await probes.get_leader_status(r, self.TABLET_ID, timeout=1) for r in self.replicas]
        self.assertEqual(statuses, [LeaderStatus.LEADER, LeaderStatus.NOT_LEADER, LeaderStatus.NOT_LEADER])

    async def test_leader_status_of_removed_member(self):
        """A replica that still hosts the tablet but left the config is NOT_FOUND."""
        del self.group.members['ts-2']
        status = await probes.get_leader_status(self.directory['ts-2'], self.TABLET_ID, timeout=1)
        self.assertEqual(status, LeaderStatus.NOT_FOUND)

    async def test_list_tablets_and_ping(self):
        self.cluster.create_tablet('tablet-2', ['ts-1'])

        self.assertEqual(await probes.list_tablets(self.directory['ts-1'], timeout=1), ['tablet-1', 'tablet-2'])
        self.assertTrue(await probes.ping(self.leader, timeout=1))

        self.cluster.servers['ts-0'].unresponsive = True
        self.assertFalse(await probes.ping(self.leader, timeout=0.2))

    async def test_handle_metrics(self):
        await probes.get_last_log_position(self.leader, self.TABLET_ID, timeout=1)
        await probes.list_tablets(self.leader, timeout=1)

        snapshot = self.leader.metrics.snapshot()
        self.assertEqual(snapshot['GetLastOpId']['calls'], 1)
        self.assertEqual(snapshot['ListTablets']['calls'], 1)


if __name__ == '__main__':
    unittest.main()
