from __future__ import annotations

# python imports:
import logging
import math
import trio # pip install trio trio-typing
from typing import Optional as Opt, Type

# pop3_mime imports:
from transport import AsyncTransport
from util import BYTES

logger = logging.getLogger ( __name__ )


class TrioTransport ( AsyncTransport ):
	happy_eyeballs_delay: float = 0.25 # this is the same as trio's default circa version 0.16.0
	close_timeout: float = 0.05
	stream: trio.abc.Stream

	def __init__ ( self, stream: trio.abc.Stream ) -> None:
		self.stream = stream

	@classmethod
	async def connect ( cls: Type[TrioTransport], hostname: str, port: int, tls: bool ) -> TrioTransport:
		#log = logger.getChild ( 'TrioTransport.connect' )
		stream = await trio.open_tcp_stream ( hostname, port,
			happy_eyeballs_delay = cls.happy_eyeballs_delay,
		)
		self = cls ( stream )
		if tls:
			await self.starttls_client ( hostname )
		return self

	async def read ( self, timeout: Opt[float] = None ) -> bytes:
		#log = logger.getChild ( 'TrioTransport.read' )
		with trio.move_on_after ( math.inf if timeout is None else timeout ):
			return await self.stream.receive_some()
		raise TimeoutError ( f'{type(self).__module__}.{type(self).__name__} timeout waiting to read data' )

	async def write ( self, data: BYTES ) -> None:
		#log = logger.getChild ( 'TrioTransport.write' )
		with trio.move_on_after ( math.inf if self.write_timeout is None else self.write_timeout ):
			await self.stream.send_all ( data )
			return
		raise TimeoutError ( f'{type(self).__module__}.{type(self).__name__} timeout waiting to write {bytes(data)=}' )

	async def starttls_client ( self, server_hostname: str ) -> None:
		context = self.ssl_context_or_default_client()

		self.stream = trio.SSLStream (
			self.stream,
			ssl_context = context,
			server_hostname = server_hostname,
		)

	async def close ( self ) -> None:
		#log = logger.getChild ( 'TrioTransport.close' )
		with trio.move_on_after ( self.close_timeout ):
			await self.stream.aclose() # TODO FIXME: why sometimes getting hung up when in ssl?
