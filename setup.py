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

from setuptools import setup
from influxpush import __version__

setup(
    name='influxpush',
    version=__version__,

    description='Buffered, non-blocking InfluxDB line protocol writer',
    license='ASF2.0',

    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Other Environment',
        'Intended Audience :: Developers',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: MacOS :: MacOS X',
        'Operating System :: POSIX',
        'Operating System :: POSIX :: Linux',
        'Operating System :: Unix',
        'Programming Language :: Python',
        "Programming Language :: Python :: 3",
        'Topic :: Database',
        'Topic :: System :: Networking :: Monitoring',
        'Topic :: Utilities',
    ],
    python_requires='>=3.7',
    zip_safe=False,
    packages=['influxpush'],
    include_package_data=True,
    extras_require={
        'test': ['pytest'],
    },

    entry_points="""\
    [console_scripts]
    influxpush=influxpush.main:main
    """
)
