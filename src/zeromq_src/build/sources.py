"""Source manifest for the vendored libzmq tree.

Paths are relative to the root of the vendored tree. The manifest is fixed so
that planning needs no filesystem access; the driver checks that every listed
file exists before compiling.
"""

from typing import List

CXX_SOURCE_NAMES = [
    "address", "channel", "client", "clock", "ctx", "curve_client",
    "curve_mechanism_base", "curve_server", "dealer", "decoder_allocators",
    "devpoll", "dgram", "dish", "dist", "endpoint", "epoll", "err", "fq",
    "gather", "gssapi_client", "gssapi_mechanism_base", "gssapi_server",
    "io_object", "io_thread", "ip", "ip_resolver", "ipc_address",
    "ipc_connecter", "ipc_listener", "kqueue", "lb", "mailbox",
    "mailbox_safe", "mechanism", "mechanism_base", "metadata", "msg", "mtrie",
    "norm_engine", "null_mechanism", "object", "options", "own", "pair",
    "peer", "pgm_receiver", "pgm_sender", "pgm_socket", "pipe",
    "plain_client", "plain_server", "poll", "poller_base", "polling_util",
    "pollset", "precompiled", "proxy", "pub", "pull", "push", "radio",
    "radix_tree", "random", "raw_decoder", "raw_encoder", "raw_engine",
    "reaper", "rep", "req", "router", "scatter", "select", "server",
    "session_base", "signaler", "socket_base", "socket_poller", "socks",
    "socks_connecter", "stream", "stream_connecter_base",
    "stream_engine_base", "stream_listener_base", "sub", "tcp",
    "tcp_address", "tcp_connecter", "tcp_listener", "thread", "timers",
    "tipc_address", "tipc_connecter", "tipc_listener", "trie",
    "udp_address", "udp_engine", "v1_decoder", "v1_encoder", "v2_decoder",
    "v2_encoder", "v3_1_encoder", "vmci", "vmci_address", "vmci_connecter",
    "vmci_listener", "ws_address", "ws_connecter", "ws_decoder",
    "ws_encoder", "ws_engine", "ws_listener", "xpub", "xsub", "zap_client",
    "zmq", "zmq_utils", "zmtp_engine",
]

SHA1_SOURCE = "external/sha1/sha1.c"
TWEETNACL_SOURCE = "src/tweetnacl.c"

PUBLIC_HEADERS = ["include/zmq.h", "include/zmq_utils.h"]

# Vendored directory that carries a ready-made platform.hpp for MSVC.
MSVC_PLATFORM_DIR = "builds/deprecated-msvc"


def cxx_sources() -> List[str]:
    """Relative paths of every C++ translation unit."""
    return [f"src/{name}.cpp" for name in CXX_SOURCE_NAMES]


def c_sources(bundled_crypto: bool) -> List[str]:
    """Relative paths of the C translation units.

    Args:
        bundled_crypto: Whether the bundled tweetnacl implementation is built
    """
    sources = [SHA1_SOURCE]
    if bundled_crypto:
        sources.append(TWEETNACL_SOURCE)
    return sources
