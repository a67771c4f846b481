from __future__ import annotations

# python imports:
from typing import Type

# pop3_mime imports:
import pop3_async
from transport_trio import TrioTransport as Transport

class Client ( pop3_async.Client ):
	@classmethod
	async def connect ( cls: Type[Client],
		hostname: str,
		port: int,
		tls: bool,
	) -> Client:
		transport = await Transport.connect ( hostname, port, tls )
		return cls ( transport )
