from __future__ import annotations

# python imports:
from abc import ABCMeta
import contextlib
from enum import Flag
import logging
import sys
import time
from typing import Iterator, Optional as Opt, Type

# pop3_mime imports:
from base_proto import (
	BaseRequest, RequestType, ResponseType, Event, SendDataEvent,
	ClientProtocol, Closed, ProtocolTimeout,
)
from transport import SyncTransport, AsyncTransport
from util import BYTES, b2s

logger = logging.getLogger ( __name__ )
logger.addHandler ( logging.NullHandler() )


def _wire ( data: BYTES ) -> str:
	text = b2s ( data, 'utf-8', 'replace' ).rstrip()
	if text[:5].upper() == 'PASS ':
		return 'PASS ********'
	return text


@contextlib.contextmanager
def _event_exception_safety ( event: Event ) -> Iterator[None]:
	try:
		yield
	except Exception:
		event.exc_info = sys.exc_info()


@contextlib.contextmanager
def close_if_oserror() -> Iterator[None]:
	try:
		yield
	except TimeoutError:
		raise
	except OSError as e: # TODO FIXME: more specific exception?
		raise Closed ( repr ( e ) ) from e


class SyncEventHandler:
	transport: SyncTransport
	log: logging.Logger = logger

	def on_SendDataEvent ( self, event: SendDataEvent ) -> None:
		log = self.log.getChild ( 'SyncEventHandler.on_SendDataEvent' )
		for chunk in event.chunks:
			log.debug ( f'C>{_wire(chunk)}' )
			self.transport.write ( chunk )

	def _on_event ( self, event: Event ) -> None:
		#log = self.log.getChild ( 'SyncEventHandler._on_event' )
		with _event_exception_safety ( event ):
			func = getattr ( self, f'on_{type(event).__name__}' )
			func ( event )

	def close ( self ) -> None:
		self.transport.close()


class AsyncEventHandler:
	transport: AsyncTransport
	log: logging.Logger = logger

	async def on_SendDataEvent ( self, event: SendDataEvent ) -> None:
		log = self.log.getChild ( 'AsyncEventHandler.on_SendDataEvent' )
		for chunk in event.chunks:
			log.debug ( f'C>{_wire(chunk)}' )
			await self.transport.write ( chunk )

	async def _on_event ( self, event: Event ) -> None:
		#log = self.log.getChild ( 'AsyncEventHandler._on_event' )
		with _event_exception_safety ( event ):
			func = getattr ( self, f'on_{type(event).__name__}' )
			await func ( event )

	async def close ( self ) -> None:
		await self.transport.close()


class Client ( metaclass = ABCMeta ):
	protocls: Type[ClientProtocol]
	proto: ClientProtocol
	timeout: float = 60.0 # seconds to wait for a reply unless the request says otherwise
	log: logging.Logger

	def _setup ( self,
		timeout: Opt[float],
		log: Opt[logging.Logger],
	) -> None:
		self.proto = self.protocls()
		if timeout is not None:
			self.timeout = timeout
		if log is not None:
			self.log = log

	def _timeout_for ( self, request: BaseRequest ) -> float:
		return self.timeout if request.timeout is None else request.timeout

	def _remaining ( self, request: BaseRequest, deadline: float ) -> float:
		remaining = deadline - time.monotonic()
		if remaining <= 0:
			raise ProtocolTimeout ( f'no reply to {request!r} within {self._timeout_for(request)!r} seconds' )
		return remaining


class SyncClient ( SyncEventHandler, Client ):
	def __init__ ( self,
		transport: SyncTransport,
		*,
		timeout: Opt[float] = None,
		log: Opt[logging.Logger] = None,
	) -> None:
		self.transport = transport
		self._setup ( timeout, log )

	def _request ( self, request: RequestType[ResponseType], state: Flag ) -> ResponseType:
		log = self.log.getChild ( 'SyncClient._request' )
		for event in self.proto.send ( request, state ):
			self._on_event ( event )
		deadline = time.monotonic() + self._timeout_for ( request )
		while not request.base_response:
			remaining = self._remaining ( request, deadline )
			try:
				with close_if_oserror():
					data: bytes = self.transport.read ( remaining )
			except TimeoutError as e:
				raise ProtocolTimeout ( f'no reply to {request!r} within {self._timeout_for(request)!r} seconds' ) from e
			log.debug ( f'S>{_wire(data)}' )
			for event in self.proto.receive ( data ):
				self._on_event ( event )
		assert (
			request.base_response is not None
		and
			request.base_response.is_success()
		), f'invalid {request.base_response=}'
		return request.response


class AsyncClient ( AsyncEventHandler, Client ):
	def __init__ ( self,
		transport: AsyncTransport,
		*,
		timeout: Opt[float] = None,
		log: Opt[logging.Logger] = None,
	) -> None:
		self.transport = transport
		self._setup ( timeout, log )

	async def _request ( self, request: RequestType[ResponseType], state: Flag ) -> ResponseType:
		log = self.log.getChild ( 'AsyncClient._request' )
		for event in self.proto.send ( request, state ):
			await self._on_event ( event )
		deadline = time.monotonic() + self._timeout_for ( request )
		while not request.base_response:
			remaining = self._remaining ( request, deadline )
			try:
				with close_if_oserror():
					data: bytes = await self.transport.read ( remaining )
			except TimeoutError as e:
				raise ProtocolTimeout ( f'no reply to {request!r} within {self._timeout_for(request)!r} seconds' ) from e
			log.debug ( f'S>{_wire(data)}' )
			for event in self.proto.receive ( data ):
				await self._on_event ( event )
		assert (
			request.base_response is not None
		and
			request.base_response.is_success()
		), f'invalid {request.base_response=}'
		return request.response
