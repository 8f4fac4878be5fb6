

import os
import logging
import tempfile
import unittest
from unittest.mock import patch
import influxpush.main as main
import influxpush.client as client
from influxpush.errors import SubmissionError


def write_file(directory, name, content):
    path = os.path.join(directory, name)
    with open(path, 'w') as f:
        f.write(content)
    return path


class TestPusher(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.pusher = main.Pusher(None)
        self.pusher.log = logging.getLogger('influxpush.test')

    def tearDown(self):
        self.tmpdir.cleanup()
        # run() configures the package logger, don't leak it into other tests
        root = logging.getLogger('influxpush')
        for h in list(root.handlers):
            root.removeHandler(h)
        root.setLevel(logging.NOTSET)

    def test_default_config(self):
        cfg = self.pusher.load_config(None)
        self.assertEqual(cfg['base_url'], 'http://localhost:8086')
        self.assertEqual(cfg['database'], 'telemetry')
        self.assertEqual(cfg['precision'], 'ms')
        self.assertTrue(cfg['capture_failures'])
        self.assertNotIn('__builtins__', cfg)

    def test_config_env_substitution(self):
        path = write_file(self.tmpdir.name, 'test.cfg', 'database = "${TEST_DB}"\nprice = "$$5"\n')
        with patch.dict(os.environ, {'TEST_DB': 'from_env'}):
            cfg = self.pusher.load_config(path)
        self.assertEqual(cfg['database'], 'from_env')
        self.assertEqual(cfg['price'], '$5')

    def test_config_missing_env(self):
        path = write_file(self.tmpdir.name, 'test.cfg', 'database = "${SURELY_NOT_SET_ANYWHERE}"\n')
        with self.assertRaises(KeyError):
            self.pusher.load_config(path)

    def test_parse_line(self):
        m = self.pusher.parse_line(
            '{"measurement": "cpu", "tags": {"host": "a", "core": 1}, '
            '"fields": {"user": 1.5, "ok": true, "msg": "x"}, "timestamp": 1500000000.5}'
        )
        self.assertEqual(m.measurement, 'cpu')
        self.assertEqual(m.tags, ['host=a', 'core=1'])
        self.assertEqual(m.fields, ['user=1.5', 'ok=True', 'msg="x"'])
        self.assertEqual(m.timestamp, 1500000000500000000)

    def test_parse_line_errors(self):
        for line in (
            'not json',
            '[1, 2]',
            '{"fields": {"x": 1}}',
            '{"measurement": "m", "fields": [1]}',
            '{"measurement": "m", "fields": {"x": null}}',
            '{"measurement": "m", "fields": {"x": 1}, "timestamp": "now"}',
            '{"measurement": "m", "fields": {"x": 1}, "timestamp": -Infinity}',
        ):
            with self.assertRaises((ValueError, TypeError)):
                self.pusher.parse_line(line)

    def test_push_lines(self):
        output = client.NullClient('s')
        self.pusher.push_lines(output, [
            '{"measurement": "m", "fields": {"x": 1}}\n',
            '\n',
            'garbage\n',
            '{"measurement": "m"}\n',
            '{"measurement": "m", "fields": {"y": "z"}}\n',
        ])
        self.assertEqual(output.metrics_added, 2)
        self.assertEqual(self.pusher.lines_skipped, 2)

    def test_push_lines_bad_numbers(self):
        output = client.NullClient('s')
        self.pusher.push_lines(output, [
            '{"measurement": "m", "fields": {"x": 1}, "timestamp": Infinity}\n',
            '{"measurement": "m", "fields": {"x": 1}, "timestamp": NaN}\n',
            '{"measurement": "m", "fields": {"x": 1}, "timestamp": 1e400}\n',
            '{"measurement": "m", "fields": {"x": 1}, "timestamp": 1e305}\n',
            '{"measurement": "m", "fields": {"x": NaN}}\n',
            '{"measurement": "m", "fields": {"x": 1}, "timestamp": 1500000000}\n',
        ])
        self.assertEqual(output.metrics_added, 1)
        self.assertEqual(self.pusher.lines_skipped, 5)

    def test_push_lines_stops(self):
        output = client.NullClient('s')
        self.pusher.stopping = True
        self.pusher.push_lines(output, ['{"measurement": "m", "fields": {"x": 1}}'])
        self.assertEqual(output.metrics_added, 0)

    def test_run_inactive(self):
        cfg_path = write_file(self.tmpdir.name, 'test.cfg', 'client_inactive = True\nlog_level = "WARNING"\n')
        input_path = write_file(self.tmpdir.name, 'input.ndjson', '{"measurement": "m", "fields": {"x": 1}}\n')
        with patch('signal.signal'):
            self.assertEqual(main.Pusher(cfg_path, [input_path]).run(), 0)

    def test_run_submission_error(self):
        cfg_path = write_file(
            self.tmpdir.name, 'test.cfg',
            'base_url = "http://127.0.0.1:8086"\ndatabase = "test"\nprecision = "s"\nlog_level = "CRITICAL"\n'
        )
        input_path = write_file(self.tmpdir.name, 'input.ndjson', '{"measurement": "m", "fields": {"x": 1}}\n')
        with patch('signal.signal'), patch('influxpush.transport.Transport.add_request') as add_request:
            add_request.side_effect = SubmissionError('Transport is closed')
            self.assertEqual(main.Pusher(cfg_path, [input_path]).run(), 1)

    def test_run_connection_refused(self):
        cfg_path = write_file(
            self.tmpdir.name, 'test.cfg',
            'base_url = "http://127.0.0.1:1"\ndatabase = "test"\nprecision = "s"\n'
            'capture_failures = True\ndrain_timeout = 10\nlog_level = "CRITICAL"\n'
        )
        input_path = write_file(self.tmpdir.name, 'input.ndjson', '{"measurement": "m", "fields": {"x": 1}}\n')
        with patch('signal.signal'):
            self.assertEqual(main.Pusher(cfg_path, [input_path]).run(), 1)

    def test_main_args(self):
        with patch('influxpush.main.Pusher') as pusher, self.assertRaises(SystemExit) as ctx:
            pusher.return_value.run.return_value = 0
            main.main(['influxpush', 'my.cfg', '-i', 'a.ndjson', '-i', 'b.ndjson'])
        pusher.assert_called_once_with('my.cfg', ['a.ndjson', 'b.ndjson'])
        self.assertEqual(ctx.exception.code, 0)


if __name__ == '__main__':
    unittest.main()
