import unittest
import os
import json
import logging
import tempfile
import shutil
from unittest.mock import patch

from raftprobe.config import HarnessConfig
from raftprobe.core.consensus_state import ConsensusSnapshot
from raftprobe.core.constants import MemberRole, MemberType
from raftprobe.core.deadline import Deadline
from raftprobe.core.errors import (
    AlreadyPresent,
    IllegalState,
    NotFound,
    NotLeader,
    ProtocolError,
    RemoteError,
    code_for_error,
    error_from_response,
    raise_for_error,
)
from raftprobe.core.opid import LogPosition
from raftprobe.core.registration import HostPort, Registration
from raftprobe.utils.logging_config import ReplicaAwareFormatter, add_replica_context, setup_harness_logging
from raftprobe.utils.rpc_metrics import RpcMetrics


class TestLogPosition(unittest.TestCase):
    """Test the LogPosition class."""

    def test_ordering(self):
        """Positions order by term first, then index."""
        self.assertLess(LogPosition(1, 5), LogPosition(2, 1))
        self.assertLess(LogPosition(2, 1), LogPosition(2, 2))
        self.assertEqual(LogPosition(3, 4), LogPosition(3, 4))
        self.assertEqual(max([LogPosition(1, 9), LogPosition(2, 0)]), LogPosition(2, 0))
        self.assertEqual(LogPosition.MINIMUM, LogPosition(0, 0))

    def test_from_dict(self):
        self.assertEqual(LogPosition.from_dict({'term': 2, 'index': 7}), LogPosition(2, 7))
        self.assertEqual(str(LogPosition(2, 7)), "2.7")

    def test_from_dict_rejects_malformed(self):
        for data in (None, [], {'term': 1}, {'term': 'a', 'index': 1}, {'term': -1, 'index': 0}):
            with self.subTest(data=data):
                with self.assertRaises(ProtocolError):
                    LogPosition.from_dict(data)


class TestConsensusSnapshot(unittest.TestCase):
    """Test decoding of committed consensus state."""

    def setUp(self):
        self.body = {
            'cstate': {
                'current_term': 3,
                'leader_uuid': 'a',
                'config': {
                    'opid_index': 12,
                    'peers': [
                        {'uuid': 'a', 'role': 'LEADER', 'member_type': 'VOTER'},
                        {'uuid': 'b', 'role': 'FOLLOWER', 'member_type': 'VOTER'},
                        {'uuid': 'c', 'role': 'LEARNER', 'member_type': 'NON_VOTER'},
                    ],
                },
            }
        }

    def test_from_dict(self):
        snapshot = ConsensusSnapshot.from_dict(self.body)

        self.assertEqual(snapshot.current_term, 3)
        self.assertEqual(snapshot.leader_uuid, 'a')
        self.assertEqual(snapshot.opid_index, 12)
        self.assertEqual([m.uuid for m in snapshot.members], ['a', 'b', 'c'])
        self.assertEqual(snapshot.member('c').role, MemberRole.LEARNER)
        self.assertEqual(snapshot.member('c').member_type, MemberType.NON_VOTER)
        self.assertEqual(snapshot.voter_count, 2)
        self.assertTrue(snapshot.has_member('b'))
        self.assertFalse(snapshot.has_member('z'))

    def test_round_trip_through_dict(self):
        snapshot = ConsensusSnapshot.from_dict(self.body)
        self.assertEqual(ConsensusSnapshot.from_dict(snapshot.to_dict()), snapshot)

    def test_empty_leader_means_none(self):
        self.body['cstate']['leader_uuid'] = ''
        self.assertIsNone(ConsensusSnapshot.from_dict(self.body).leader_uuid)

    def test_malformed(self):
        with self.assertRaises(ProtocolError):
            ConsensusSnapshot.from_dict({})
        with self.assertRaises(ProtocolError):
            ConsensusSnapshot.from_dict({'cstate': {'current_term': 1}})

        self.body['cstate']['config']['peers'][0]['role'] = 'KING'
        with self.assertRaises(ProtocolError):
            ConsensusSnapshot.from_dict(self.body)


class TestRegistration(unittest.TestCase):

    def test_from_dict(self):
        registration = Registration.from_dict({
            'rpc_addresses': [{'host': 'h1', 'port': 7050}],
            'http_addresses': [{'host': 'h1', 'port': 8050}],
        })
        self.assertEqual(registration.rpc_addresses, [HostPort('h1', 7050)])
        self.assertEqual(str(registration.http_addresses[0]), 'h1:8050')

    def test_malformed(self):
        with self.assertRaises(ProtocolError):
            Registration.from_dict({'rpc_addresses': [{'host': 'h1'}]})
        with self.assertRaises(ProtocolError):
            Registration.from_dict('h1:7050')


class TestDeadline(unittest.TestCase):

    @patch('raftprobe.core.deadline.time.monotonic')
    def test_remaining_and_expired(self, monotonic):
        monotonic.return_value = 100.0
        deadline = Deadline.after(5)

        monotonic.return_value = 103.0
        self.assertAlmostEqual(deadline.remaining(), 2.0)
        self.assertFalse(deadline.expired())

        monotonic.return_value = 106.0
        self.assertEqual(deadline.remaining(), 0.0)
        self.assertTrue(deadline.expired())

    def test_coerce(self):
        deadline = Deadline.after(1)
        self.assertIs(Deadline.coerce(deadline), deadline)
        self.assertIsInstance(Deadline.coerce(2.5), Deadline)
        with self.assertRaises(ValueError):
            Deadline.after(-1)


class TestErrors(unittest.TestCase):
    """Test mapping between wire error codes and exceptions."""

    def test_error_from_response(self):
        self.assertIsInstance(error_from_response({'code': 'TABLET_NOT_FOUND'}), NotFound)
        self.assertIsInstance(error_from_response({'code': 'NOT_THE_LEADER'}), NotLeader)
        self.assertIsInstance(error_from_response({'code': 'ALREADY_PRESENT'}), AlreadyPresent)

        error = error_from_response({'code': 'DISK_FULL', 'message': 'no space'})
        self.assertIsInstance(error, RemoteError)
        self.assertEqual(error.code, 'DISK_FULL')
        self.assertEqual(str(error), 'no space')

        self.assertIsInstance(error_from_response('oops'), ProtocolError)

    def test_not_leader_is_illegal_state(self):
        self.assertTrue(issubclass(NotLeader, IllegalState))

    def test_raise_for_error(self):
        self.assertEqual(raise_for_error({'ok': 1}), {'ok': 1})
        with self.assertRaises(NotLeader):
            raise_for_error({'error': {'code': 'NOT_THE_LEADER'}})

    def test_code_for_error(self):
        self.assertEqual(code_for_error(NotFound('x')), 'TABLET_NOT_FOUND')
        self.assertEqual(code_for_error(RemoteError('x', code='DISK_FULL')), 'DISK_FULL')
        self.assertEqual(code_for_error(ProtocolError('x')), 'RUNTIME_ERROR')


class TestHarnessConfig(unittest.TestCase):
    """Test loading configuration from files and the environment."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_defaults(self):
        config = HarnessConfig()
        self.assertEqual(config.rpc_timeout, 10.0)
        self.assertEqual(config.retry_interval, 0.1)
        self.assertEqual(config.log_level_number, logging.INFO)

    def test_from_file_with_env_override(self):
        path = os.path.join(self.temp_dir, 'harness.json')
        with open(path, 'w') as f:
            json.dump({'master_url': 'http://m:8051', 'rpc_timeout': 3}, f)

        with patch.dict(os.environ, {'RAFTPROBE_RETRY_INTERVAL': '0.5'}):
            config = HarnessConfig.from_file(path)

        self.assertEqual(config.master_url, 'http://m:8051')
        self.assertEqual(config.rpc_timeout, 3.0)
        self.assertEqual(config.retry_interval, 0.5)

    def test_from_env(self):
        config = HarnessConfig.from_env(environ={'RAFTPROBE_MAX_FANOUT': '4', 'RAFTPROBE_LOG_LEVEL': 'debug'})
        self.assertEqual(config.max_fanout, 4)
        self.assertEqual(config.log_level_number, logging.DEBUG)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            HarnessConfig(rpc_timeout=0)
        with self.assertRaises(ValueError):
            HarnessConfig.from_dict({'max_fanout': 'many'})
        with self.assertRaises(ValueError):
            HarnessConfig.from_dict({'rpc_timeout': 1, 'bogus': True})
        with self.assertRaises(ValueError):
            HarnessConfig(log_level='LOUD')


class TestRpcMetrics(unittest.TestCase):

    def test_record_and_merge(self):
        metrics = RpcMetrics()
        metrics.record_success('GetLastOpId', 0.2)
        metrics.record_success('GetLastOpId', 0.4)
        metrics.record_failure('GetLastOpId')

        self.assertAlmostEqual(metrics.get_avg_rtt('GetLastOpId'), 0.3)
        self.assertAlmostEqual(metrics.get_failure_rate('GetLastOpId'), 1 / 3)
        self.assertIsNone(metrics.get_avg_rtt('Write'))
        self.assertEqual(metrics.get_failure_rate('Write'), 0.0)

        other = RpcMetrics()
        other.record_failure('Write')
        merged = metrics.merge(other)

        self.assertEqual(merged.snapshot()['Write'], {'calls': 1, 'failures': 1, 'avg_rtt': 0.0})
        self.assertEqual(merged.snapshot()['GetLastOpId']['calls'], 3)
        self.assertAlmostEqual(merged.get_failure_rate(), 0.5)


class TestLogging(unittest.TestCase):

    def test_formatter_appends_context(self):
        formatter = ReplicaAwareFormatter('%(message)s')
        record = logging.LogRecord('raftprobe.test', logging.INFO, __file__, 1, 'probing', None, None)
        record.replica_id = 'ts-1'
        record.tablet_id = 't1'

        self.assertEqual(formatter.format(record), 'probing [replica_id=ts-1 tablet_id=t1]')

        record.json_format = True
        self.assertEqual(json.loads(formatter.format(record))['replica_id'], 'ts-1')

    def test_setup_harness_logging_writes_files(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        temp_dir = tempfile.mkdtemp()
        try:
            logger = setup_harness_logging(log_dir=temp_dir, log_level=logging.DEBUG, enable_json=True)
            logging.getLogger('raftprobe.test.setup').info('cluster ready', extra={'tablet_id': 't1'})
            for handler in root.handlers:
                handler.flush()

            self.assertEqual(logger.name, 'raftprobe')
            with open(os.path.join(temp_dir, 'raftprobe.log')) as f:
                self.assertIn('cluster ready [tablet_id=t1]', f.read())
            with open(os.path.join(temp_dir, 'raftprobe-json.log')) as f:
                lines = [json.loads(line) for line in f if line.strip()]
            self.assertEqual(lines[-1]['tablet_id'], 't1')
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
            shutil.rmtree(temp_dir)

    def test_setup_harness_logging_uses_config_level(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_harness_logging(log_level=logging.INFO, config=HarnessConfig(log_level='warning'))

            self.assertEqual(root.level, logging.WARNING)
            self.assertTrue(all(h.level == logging.WARNING for h in root.handlers))
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_add_replica_context(self):
        logger = add_replica_context(logging.getLogger('raftprobe.test.context'), replica_id='ts-2')
        with self.assertLogs('raftprobe.test.context', level='INFO') as captured:
            logger.info('hello')
        self.assertEqual(captured.records[0].replica_id, 'ts-2')


if __name__ == '__main__':
    unittest.main()
