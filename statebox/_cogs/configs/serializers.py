"""
Serialization of the persisted envelopes to strings and back.

An envelope is what is actually put into a storage: the persisted part
of the state plus the version of its schema (used for migrations).
JSON is the default format. YAML is available for the human-edited storages.

The custom serializers can be sync or async functions, e.g. for encryption
with external key management; the persistence pipelines support both.
"""
import json
from typing import Any

import yaml
from typing_extensions import TypedDict


class _EnvelopeBase(TypedDict, total=True):
    state: Any


class Envelope(_EnvelopeBase, total=False):
    """ A unit of persistence: the partialized state and its version. """
    version: int


def dump_json(envelope: Envelope) -> str:
    return json.dumps(envelope)


def load_json(encoded: str) -> Envelope:
    decoded: Envelope = json.loads(encoded)
    return decoded


def dump_yaml(envelope: Envelope) -> str:
    return yaml.safe_dump(dict(envelope), sort_keys=False, allow_unicode=True)


def load_yaml(encoded: str) -> Envelope:
    decoded: Envelope = yaml.safe_load(encoded)
    return decoded
