"""
Vocabulary shared with the circuit layer.

The circuit layer itself (link handshake, CREATE/EXTEND, relay cell
encryption) lives outside of this package. Objects handed to lighths are
expected to provide:

    link.create_circuit()                 -> a new, unbuilt circuit

    circuit.create()                      (raises CircuitFailure)
    circuit.extend(relay)                 (raises CircuitFailure)
    circuit.open_directory_stream(listener) -> stream
    circuit.send(payload, command, early, stream_id)
    circuit.wait_for_state(state, extended=False)  (raises CircuitFailure)
    circuit.destroy()
    circuit.state, circuit.last_hop

    stream.send_http_get(path, host)
    stream.send_http_post(path, host, body)
    stream.read()                         -> buffered response (bytes)

A rendezvous circuit additionally carries its `cookie` and receives the
`handshake` (see introduce.send_introduce) needed to finish the circuit.
"""

import enum


class CircuitFailure(RuntimeError):
    pass


class State(enum.Enum):
    BUILDING = 0
    CREATED = 1
    CREATED_AND_EXTENDED = 2
    INTRODUCED = 3
    RENDEZVOUS_COMPLETE = 4
    DESTROYED = 5


class Command(enum.IntEnum):
    RELAY_BEGIN             = 0x01
    RELAY_DATA              = 0x02
    RELAY_END               = 0x03
    RELAY_CONNECTED         = 0x04
    RELAY_BEGIN_DIR         = 0x0d

    # rend-spec-v2 (section 1.9 onwards)
    ESTABLISH_INTRO         = 0x20
    ESTABLISH_RENDEZVOUS    = 0x21
    INTRODUCE1              = 0x22
    INTRODUCE2              = 0x23
    RENDEZVOUS1             = 0x24
    RENDEZVOUS2             = 0x25
    INTRO_ESTABLISHED       = 0x26
    RENDEZVOUS_ESTABLISHED  = 0x27
    INTRODUCE_ACK           = 0x28


def destroyed(circuit):
    return circuit.state is State.DESTROYED
