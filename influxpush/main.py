# -*- coding: utf-8 -
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may not
# use this file except in compliance with the License. You may obtain a copy of
# the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
# WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
# License for the specific language governing permissions and limitations under
# the License.


import os
import sys
import json
import math
import string
import signal
import argparse
import influxpush.cfg as cfg
import influxpush.common as common
import influxpush.client as client
from influxpush.metric import Metric
from influxpush.errors import InfluxPushError


class Pusher:
    def __init__(self, cfg_file, inputs=None):
        self.cfg_file = cfg_file
        self.inputs = inputs or ('-',)
        self.log = None
        self.stopping = False
        self.lines_skipped = 0

    def load_config(self, cfg_file):
        new_config = {}
        with open(cfg_file or cfg.__file__, 'r') as f:
            config_template = string.Template(f.read())
            config_str = config_template.substitute(os.environ)
            exec(config_str, new_config)
        return {k: v for k, v in new_config.items() if not k.startswith('_')}

    def read_lines(self):
        for name in self.inputs:
            if name == '-':
                yield from sys.stdin
            else:
                with open(name, 'r') as f:
                    yield from f

    def parse_line(self, line):
        # http://ndjson.org/
        obj = json.loads(line)
        if not isinstance(obj, dict):
            raise ValueError("Expected a JSON object")
        tags, fields = obj.get('tags') or {}, obj.get('fields') or {}
        if not isinstance(tags, dict) or not isinstance(fields, dict):
            raise ValueError("Tags and fields have to be JSON objects")
        timestamp = obj.get('timestamp')
        if timestamp is not None:
            if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
                raise ValueError("Timestamp has to be a number of seconds")
            if isinstance(timestamp, float) and not math.isfinite(timestamp * 1000000000):
                raise ValueError("Timestamp %r is out of range" % (timestamp,))
            timestamp = int(timestamp * 1000000000)
        metric = Metric(obj.get('measurement'), timestamp)
        for k, v in tags.items():
            metric.add_tag(k, v)
        for k, v in fields.items():
            metric.add_field(k, v)
        return metric

    def push_lines(self, output, lines):
        for line_number, line in enumerate(lines, 1):
            if self.stopping:
                break
            line = line.strip()
            if not line:
                continue
            try:
                output.add_metric(self.parse_line(line))
            except (ValueError, TypeError) as e:
                # EncodingError is a ValueError, too
                self.log.warning("Skipping line %d: %s", line_number, e)
                self.lines_skipped += 1
            # Let the in-flight writes progress while reading
            output.poll()
        output.flush()

    def termination_handler(self, signal_number, stack_frame):
        self.log.info("Received signal %d, finishing", signal_number)
        self.stopping = True
        # A second signal kills the process
        signal.signal(signal_number, signal.SIG_DFL)

    def run(self):
        new_config = self.load_config(self.cfg_file)
        self.log = common.setup_logging(new_config, 'influxpush')
        drain_timeout = new_config.get('drain_timeout', 30)
        poll_interval = max(new_config.get('poll_interval', 0.05), 0.001)

        signal.signal(signal.SIGINT, self.termination_handler)
        signal.signal(signal.SIGTERM, self.termination_handler)

        output = client.create_client(new_config)
        try:
            self.push_lines(output, self.read_lines())
        except InfluxPushError as e:
            self.log.error("Write failed: %s", e)
            output.close(drain=False)
            return 1

        drained = output.drain(drain_timeout, poll_interval)
        failures = output.get_failures()
        for failure in failures:
            self.log.error(failure)
        self_report = output.produce_self_report()
        output.close(drain=False)
        self.log.info("Done: %s", ', '.join('%s=%s' % (k, self_report[k]) for k in sorted(self_report)))
        if not drained or self_report.get('requests_failed'):
            return 1
        return 0


def main(argv=sys.argv):
    parser = argparse.ArgumentParser(description="Push newline delimited JSON metrics to InfluxDB")
    parser.add_argument("cfg_file", help="An optional cfg file", nargs='?', default=None)
    parser.add_argument("-i", "--input", help="Input file, '-' for stdin (default)", action='append')
    args = parser.parse_args(argv[1:])
    sys.exit(Pusher(args.cfg_file, args.input).run())


if __name__ == '__main__':
    main()
