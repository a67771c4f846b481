from __future__ import annotations

# python imports:
from typing import Type

# pop3_mime imports:
import pop3_sync
from transport_socket import SocketTransport as Transport

class Client ( pop3_sync.Client ):
	@classmethod
	def connect ( cls: Type[Client],
		hostname: str,
		port: int,
		tls: bool,
	) -> Client:
		transport = Transport.connect ( hostname, port, tls )
		return cls ( transport )
