"""
On-disk cache of parsed consensus documents (JSON), refused once stale.
"""

import os
import time
import json
import shutil
import logging

cache_directory = 'lighths-cache'

def directory(base_dir=None):
    path = os.path.join(base_dir or os.getcwd(), cache_directory)
    if os.path.isdir(path):
        return path

    logging.info('Note: creating {} to cache consensus.'.format(path))
    try:
        os.makedirs(path)
    except OSError as e:
        raise RuntimeError(
            'Unable to create cache directory {}: {}'.format(path, e))

    return path

def purge(base_dir=None):
    base_dir = directory(base_dir)
    logging.warning('Note: removing {} to purge cache.'.format(base_dir))
    shutil.rmtree(base_dir)

def _check_validity(fields, now=None):
    if now is None:
        now = time.time()

    try:
        stamp = fields['headers']['valid-until']['stamp']
    except (KeyError, TypeError):
        raise ValueError('Consensus without valid-until header.')

    if stamp < now:
        raise ValueError('Consensus need to be refreshed: {} < {}'.format(
            stamp, now))

def load(path):
    """Load a parsed consensus from a JSON file (no freshness check)."""
    with open(path, 'r') as f:
        fields = json.load(f)

    if not isinstance(fields, dict) or 'routers' not in fields:
        raise ValueError('No routers in {}.'.format(path))
    return fields

class consensus:
    @staticmethod
    def filename(flavor, base_dir=None):
        return os.path.join(directory(base_dir), 'consensus-{}'.format(flavor))

    @staticmethod
    def put(fields, base_dir=None):
        filename = consensus.filename(fields['flavor'], base_dir)
        with open(filename, 'w') as f:
            json.dump(fields, f)

    @staticmethod
    def get(flavor, base_dir=None, now=None):
        filename = consensus.filename(flavor, base_dir)
        with open(filename, 'r') as f:
            fields = json.load(f)

        if not fields['flavor'] == flavor:
            raise ValueError('Mismatched flavor.')

        _check_validity(fields, now)
        return fields
