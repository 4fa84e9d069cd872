"""Bridge between local MIDI ports (mido) and a MidiService."""

import logging
import threading
from typing import Optional

import mido

from netmidi.protocols import TransferDirection
from netmidi.service import CompositeService

from .convert import from_mido, to_mido
from .messages import MidiMessage
from .service import MidiService

logger = logging.getLogger(__name__)


class MidiPortBridge(CompositeService):
    """
    Forwards MIDI between local ports and the network.

    Messages arriving on the local input port are sent through the MIDI
    service; messages the MIDI service receives are written to the local
    output port. The MIDI service is a child of the bridge, so starting the
    bridge starts it and its failure puts the bridge in ERROR.

    Either port may be omitted for a one-way bridge.
    """

    def __init__(
        self,
        midi_service: MidiService,
        input_name: Optional[str] = None,
        output_name: Optional[str] = None,
        name: Optional[str] = None,
    ):
        """
        Initialize the bridge.

        Args:
            midi_service: Network side of the bridge
            input_name: Local MIDI input port to forward to the network (None = none)
            output_name: Local MIDI output port to receive network messages (None = none)
            name: Service name
        """
        super().__init__(services=[midi_service], name=name or f"Bridge [{midi_service}]")
        self._midi_service = midi_service
        self._input_name = input_name
        self._output_name = output_name
        self._inport: Optional[mido.ports.BaseInput] = None
        self._outport: Optional[mido.ports.BaseOutput] = None
        self._port_lock = threading.Lock()

    @property
    def input_name(self) -> Optional[str]:
        return self._input_name

    @property
    def output_name(self) -> Optional[str]:
        return self._output_name

    def _start_service(self) -> None:
        try:
            if self._output_name is not None:
                with self._port_lock:
                    self._outport = mido.open_output(self._output_name)
                logger.info(f"Connected to MIDI output: {self._output_name}")
                self._midi_service.register_midi_observer(self)
            if self._input_name is not None:
                self._inport = mido.open_input(self._input_name, callback=self._midi_callback)
                logger.info(f"Connected to MIDI input: {self._input_name}")
        except Exception:
            self._close_ports()
            raise
        super()._start_service()

    def _stop_service(self) -> None:
        super()._stop_service()
        self._close_ports()

    def _close_ports(self) -> None:
        self._midi_service.unregister_midi_observer(self)
        if self._inport is not None:
            try:
                self._inport.close()
            except Exception as e:
                logger.error(f"Error closing MIDI input port: {e}")
            self._inport = None
        with self._port_lock:
            if self._outport is not None:
                try:
                    self._outport.close()
                except Exception as e:
                    logger.error(f"Error closing MIDI output port: {e}")
                self._outport = None

    def _midi_callback(self, msg: mido.Message) -> None:
        """
        MIDI message callback - called from mido's internal I/O thread.

        Forwards every message netmidi can represent; others (clock,
        transport) are skipped.
        """
        try:
            message = from_mido(msg)
            if message is None:
                logger.debug(f"Skipping local {msg.type} message")
                return
            self._midi_service.send_message(message)
        except Exception as e:
            logger.error(f"Error forwarding local MIDI message {msg}: {e}")

    def on_midi_message(self, direction: TransferDirection, message: MidiMessage) -> None:
        """Write messages received from the network to the local output port."""
        if direction is not TransferDirection.RX:
            return
        with self._port_lock:
            if self._outport is None:
                return
            try:
                self._outport.send(to_mido(message))
            except Exception as e:
                logger.error(f"Error sending MIDI message to {self._output_name}: {e}")
