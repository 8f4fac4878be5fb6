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


import time
import socket
import logging


DEFAULT_LOG_FORMAT = "[%(asctime)-15s][%(levelname)s] %(name)s(%(process)d) - %(message)s"


def setup_logging(cfg, logger_name=None):
    root = logging.getLogger(logger_name)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(cfg.get('log_level', 'INFO'))
    handler = logging.StreamHandler()
    formatter = logging.Formatter(cfg.get('log_format', DEFAULT_LOG_FORMAT))
    handler.setFormatter(formatter)
    root.addHandler(handler)
    return logging.getLogger(logger_name)


def cached_with_timeout(timeout):
    # Keyed by the positional args, falsy results are not kept.
    def decorator(func):
        cache = {}

        def wrapper(*args):
            now = time.monotonic()
            timestamp, value = cache.get(args, (0, None))
            if (now - timestamp > timeout) or not value:
                value = func(*args)
                cache[args] = now, value
            return value

        return wrapper

    return decorator


# getaddrinfo blocks, so successful lookups are reused for 3min.
# Failed lookups are retried on the next call.
@cached_with_timeout(timeout=180)
def resolve_host(host, port):
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror:
        return ()
    # Keep the resolver's order, but drop duplicates
    addresses = []
    for family, socktype, proto, canonname, sockaddr in infos:
        if (family, sockaddr) not in addresses:
            addresses.append((family, sockaddr))
    return tuple(addresses)
