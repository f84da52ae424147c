# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""kvsession session — backend-persisted sessions behind authenticated cookies.

Import concrete backend clients from the adapter package::

    from kvsession.session.adapters.memory import InMemoryBackendClient
    from kvsession.session.adapters.redis import RedisBackendClient
"""

from kvsession.session.factory import create_session_store
from kvsession.session.keygen import generate_key
from kvsession.session.middleware import SessionMiddleware
from kvsession.session.ports.outbound import BackendClient
from kvsession.session.registry import Registry, get_registry
from kvsession.session.securecookie import SecureCookie, codecs_from_pairs, decode_multi, encode_multi
from kvsession.session.serializer import JSONSerializer, SessionSerializer, StructuredSerializer
from kvsession.session.session import Session, SessionOptions
from kvsession.session.store import SessionStore

__all__ = [
    "BackendClient",
    "JSONSerializer",
    "Registry",
    "SecureCookie",
    "Session",
    "SessionMiddleware",
    "SessionOptions",
    "SessionSerializer",
    "SessionStore",
    "StructuredSerializer",
    "codecs_from_pairs",
    "create_session_store",
    "decode_multi",
    "encode_multi",
    "generate_key",
    "get_registry",
]
