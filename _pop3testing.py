from __future__ import annotations

# python imports:
import logging
import socket
import ssl
from typing import List, Optional as Opt, Sequence as Seq, Tuple
import trio # pip install trio trio-typing

# pop3_mime imports:
from transport import SyncTransport, AsyncTransport
from util import BYTES

logger = logging.getLogger ( __name__ )

# (expected request line or None for the greeting, canned server reply)
Conversation = Seq[Tuple[Opt[bytes],bytes]]


class ScriptedTransport ( SyncTransport ):
	# mock stream: hands out canned replies and records everything written
	def __init__ ( self, *replies: bytes ) -> None:
		self.replies: List[bytes] = list ( replies )
		self.written: List[bytes] = []
		self.timeouts: List[Opt[float]] = []
		self.tls_hostname: Opt[str] = None
		self.closed = False

	@property
	def sent ( self ) -> bytes:
		return b''.join ( self.written )

	def read ( self, timeout: Opt[float] = None ) -> bytes:
		self.timeouts.append ( timeout )
		if not self.replies:
			raise TimeoutError ( 'no more scripted replies' )
		return self.replies.pop ( 0 )

	def write ( self, data: BYTES ) -> None:
		self.written.append ( bytes ( data ) )

	def starttls_client ( self, server_hostname: str ) -> None:
		self.tls_hostname = server_hostname

	def close ( self ) -> None:
		self.closed = True


class AsyncScriptedTransport ( AsyncTransport ):
	def __init__ ( self, *replies: bytes ) -> None:
		self.sync = ScriptedTransport ( *replies )

	@property
	def written ( self ) -> List[bytes]:
		return self.sync.written

	async def read ( self, timeout: Opt[float] = None ) -> bytes:
		return self.sync.read ( timeout )

	async def write ( self, data: BYTES ) -> None:
		self.sync.write ( data )

	async def starttls_client ( self, server_hostname: str ) -> None:
		self.sync.starttls_client ( server_hostname )

	async def close ( self ) -> None:
		self.sync.close()


def socket_server (
	sock: socket.socket,
	conversation: Conversation,
	received: List[bytes],
	ssl_context: Opt[ssl.SSLContext] = None,
) -> None:
	log = logger.getChild ( 'socket_server' )
	if ssl_context is not None:
		sock = ssl_context.wrap_socket ( sock, server_side = True )
	try:
		with sock.makefile ( 'rb' ) as rfile:
			for expected, reply in conversation:
				if expected is not None:
					line = rfile.readline()
					log.debug ( f'C>{line!r}' )
					received.append ( line )
					if line != expected:
						break
				sock.sendall ( reply )
	finally:
		sock.close()


async def trio_server (
	stream: trio.abc.Stream,
	conversation: Conversation,
	received: List[bytes],
) -> None:
	log = logger.getChild ( 'trio_server' )
	buf = b''
	try:
		for expected, reply in conversation:
			if expected is not None:
				while b'\n' not in buf:
					data = await stream.receive_some()
					if not data:
						return
					buf += data
				line, buf = buf.split ( b'\n', 1 )
				line += b'\n'
				log.debug ( f'C>{line!r}' )
				received.append ( line )
				if line != expected:
					return
			await stream.send_all ( reply )
	finally:
		await stream.aclose()
