# python imports:
from abc import ABCMeta, abstractmethod
import logging
import ssl
from typing import Optional as Opt

# pop3_mime imports:
from util import BYTES

logger = logging.getLogger ( __name__ )


class Transport ( metaclass = ABCMeta ):
	ssl_context: Opt[ssl.SSLContext] = None
	write_timeout: Opt[float] = 10.0

	def ssl_context_or_default_client ( self ) -> ssl.SSLContext:
		if self.ssl_context is None:
			self.ssl_context = ssl.create_default_context ( ssl.Purpose.SERVER_AUTH )
		return self.ssl_context


class SyncTransport ( Transport ):
	@abstractmethod
	def read ( self, timeout: Opt[float] = None ) -> bytes:
		# must raise TimeoutError if nothing arrives within timeout seconds
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.read()' )

	@abstractmethod
	def write ( self, data: BYTES ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.write()' )

	@abstractmethod
	def starttls_client ( self, server_hostname: str ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.starttls_client()' )

	@abstractmethod
	def close ( self ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.close()' )


class AsyncTransport ( Transport ):
	@abstractmethod
	async def read ( self, timeout: Opt[float] = None ) -> bytes:
		# must raise TimeoutError if nothing arrives within timeout seconds
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.read()' )

	@abstractmethod
	async def write ( self, data: BYTES ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.write()' )

	@abstractmethod
	async def starttls_client ( self, server_hostname: str ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.starttls_client()' )

	@abstractmethod
	async def close ( self ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.close()' )
