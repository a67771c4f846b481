from __future__ import annotations

# python imports:
import logging
import socket
from typing import Optional as Opt, Type

# pop3_mime imports:
from transport import SyncTransport
from util import BYTES

logger = logging.getLogger ( __name__ )


class SocketTransport ( SyncTransport ):
	sock: socket.socket

	def __init__ ( self, sock: socket.socket ) -> None:
		self.sock = sock

	@classmethod
	def connect ( cls: Type[SocketTransport], hostname: str, port: int, tls: bool ) -> SocketTransport:
		log = logger.getChild ( 'SocketTransport.connect' )

		# TODO FIXME: implement happy eyeballs?
		for *params, _, address in socket.getaddrinfo ( hostname, port, type = socket.SOCK_STREAM ):
			sock = socket.socket ( *params )
			try:
				sock.connect ( address )
			except OSError as e:
				log.warning ( f'Error connecting to {address=}: {e!r}' )
				sock.close()
				continue
			else:
				self = cls ( sock )
				if tls:
					self.starttls_client ( hostname )
				return self
		raise ConnectionError ( f'Unable to connect to {hostname=} {port=}' )

	def read ( self, timeout: Opt[float] = None ) -> bytes:
		#log = logger.getChild ( 'SocketTransport.read' )
		self.sock.settimeout ( timeout )
		try:
			return self.sock.recv ( 4096 )
		except socket.timeout as e:
			raise TimeoutError ( f'{type(self).__module__}.{type(self).__name__} timeout waiting to read data' ) from e

	def write ( self, data: BYTES ) -> None:
		#log = logger.getChild ( 'SocketTransport.write' )
		self.sock.settimeout ( self.write_timeout )
		self.sock.sendall ( data )

	def starttls_client ( self, server_hostname: str ) -> None:
		context = self.ssl_context_or_default_client()

		self.sock = context.wrap_socket (
			self.sock,
			server_hostname = server_hostname,
		)

	def close ( self ) -> None:
		#log = logger.getChild ( 'SocketTransport.close' )
		self.sock.close()
