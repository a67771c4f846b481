from __future__ import annotations

# python imports:
from abc import ABCMeta, abstractmethod
from enum import Flag
import logging
from types import TracebackType
from typing import (
	Callable, Generator, Generic, Iterator, List, Optional as Opt,
	Sequence as Seq, Tuple, Type, TypeVar, Union,
)

# pop3_mime imports:
from util import bytes_types, BYTES, s2b, strip_eol

logger = logging.getLogger ( __name__ )

EXC_INFO = Opt[Union[
	Tuple[Type[BaseException],BaseException,TracebackType],
	Tuple[None,None,None],
]]


class Event ( Exception ):
	exc_info: EXC_INFO = None

	def go ( self ) -> Iterator[Event]:
		yield self

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}()'


class Closed ( Exception ): # TODO FIXME: BaseException?
	def __init__ ( self, reason: str = '' ) -> None:
		super().__init__ ( reason or '(none given)' )


class InvalidArgument ( ValueError ):
	pass


class ProtocolError ( Exception ):
	pass


class ProtocolStateError ( ProtocolError ):
	pass


class ProtocolFormatError ( ProtocolError ):
	pass


class ProtocolTimeout ( ProtocolError, TimeoutError ):
	pass


ResponseType = TypeVar ( 'ResponseType', bound = 'BaseResponse' )
class BaseResponse ( Exception, metaclass = ABCMeta ):
	@abstractmethod
	def is_success ( self ) -> bool:
		cls = self.__class__
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.is_success()' )


RequestProtocolGenerator = Generator[Event,None,None]


class BaseRequest ( metaclass = ABCMeta ):
	# this class is the basis of all client command handling
	# 1) client uses __init__() to construct request
	# 2) legal_states gates which session states may send it
	# 3) _client_protocol() implements client-side state machine
	legal_states: Flag
	timeout: Opt[float] = None # seconds, None means the driver's default
	base_response: Opt[BaseResponse] = None

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}()'

	@abstractmethod
	def _client_protocol ( self, client: ClientProtocol ) -> RequestProtocolGenerator:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}._client_protocol()' )


class RequestT ( BaseRequest, Generic[ResponseType] ):
	responsecls: Type[ResponseType]

	@property
	def response ( self ) -> ResponseType:
		assert isinstance ( self.base_response, self.responsecls )
		return self.base_response
RequestType = RequestT[ResponseType]


class NeedDataEvent ( Event ):
	data: Opt[BYTES] = None
	response: Opt[BaseResponse] = None

	def reset ( self ) -> NeedDataEvent:
		self.data = None
		self.response = None
		return self

	def go ( self ) -> Iterator[Event]:
		self.reset()
		yield from super().go()


class SendDataEvent ( Event ):

	def __init__ ( self, *chunks: bytes ) -> None:
		self.chunks: Seq[bytes] = chunks

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}(chunks={self.chunks!r})'


class Protocol ( metaclass = ABCMeta ):
	_buf: bytes = b''
	request: Opt[BaseRequest] = None
	request_protocol: Opt[Generator[Event,None,None]] = None
	need_data: Opt[NeedDataEvent] = None
	_MAXLINE: int

	def receive ( self, data: bytes ) -> Iterator[Event]:
		#log = logger.getChild ( 'Protocol.receive' )
		assert isinstance ( data, bytes_types ), f'invalid {data=}'
		if not data: # EOF indicator
			if self._buf:
				buf, self._buf = self._buf, b''
				yield from self._receive_line ( buf )
				return
			raise Closed ( 'EOF' )
		self._buf += data
		start = 0
		end = 0
		try:
			while ( end := ( self._buf.find ( b'\n', start ) + 1 ) ):
				line = memoryview ( self._buf )[start:end]
				start = end
				yield from self._receive_line ( line )
		finally:
			if start:
				self._buf = self._buf[start:]
		if len ( self._buf ) >= self._MAXLINE:
			raise ProtocolError ( 'maximum line length exceeded' )

	@abstractmethod
	def _receive_line ( self, line: BYTES ) -> Iterator[Event]:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}._receive_line()' )

	def _reset_request ( self ) -> Opt[BaseRequest]:
		request, self.request = self.request, None
		self.request_protocol = None
		return request

	def _run_protocol ( self ) -> Iterator[Event]:
		log = logger.getChild ( 'Protocol._run_protocol' )
		assert self.request is not None, f'invalid {self.request=}'
		assert self.request_protocol is not None, f'invalid {self.request_protocol=}'
		try:
			while True:
				log.debug ( 'yielding to request protocol' )
				event = next ( self.request_protocol )
				log.debug ( f'{event=}' )
				if isinstance ( event, NeedDataEvent ):
					if self.request.base_response is not None:
						log.warning ( f'INTERNAL ERROR - {self.request!r} pushed NeedDataEvent but has a response set - this can cause upstack deadlock ({self.request.base_response!r})' )
						self.request.base_response = None
					self.need_data = event.reset()
					return
				else:
					yield event
					if event.exc_info:
						self.request_protocol.throw ( *event.exc_info )
		except Closed:
			self._reset_request()
			raise
		except ProtocolError as e:
			log.debug ( f'protocol error: {e!r}' )
			self._reset_request()
			raise
		except BaseResponse as response:
			request = self._reset_request()
			if not response.is_success():
				raise
			assert isinstance ( request, BaseRequest )
			request.base_response = response
		except StopIteration:
			# client protocol *must* raise its response
			# *or* set it's base_response attribute before exiting
			# if not, the driver's _request() will get stuck waiting for data that never arrives
			request = self._reset_request()
			assert request is not None
			if not request.base_response:
				log.warning (
					f'INTERNAL ERROR:'
					f' {type(request).__module__}.{type(request).__name__}'
					f'._client_protocol() exit w/o response - this can cause upstack deadlock'
				)
				raise Closed ( 'INTERNAL ERROR - CLIENT PROTOCOLS MUST THROW THEIR RESPONSE' )
		except Exception as e:
			self._reset_request()
			log.exception ( 'internal protocol error:' )
			raise Closed ( repr ( e ) ) from e


class ClientProtocol ( Protocol ):
	def send ( self, request: BaseRequest, state: Flag ) -> Iterator[Event]:
		log = logger.getChild ( 'ClientProtocol.send' )
		# exactly one session state, never 0 or a combination
		if state not in tuple ( type ( state ) ) or state not in request.legal_states:
			raise ProtocolStateError (
				f'{request!r} not permitted in state {state!s} (permitted: {request.legal_states!s})'
			)
		assert self.request is None, f'trying to send {request=} but not finished processing {self.request=}'
		self.request = request
		self.request_protocol = request._client_protocol ( self )
		log.debug ( f'set {self.request=}' )
		yield from self._run_protocol()

	def _receive_line ( self, line: BYTES ) -> Iterator[Event]:
		#log = logger.getChild ( 'ClientProtocol._receive_line' )
		assert self.need_data, f'not expecting data at this time ({bytes(line)!r})'
		self.need_data.data = line
		self.need_data = None
		yield from self._run_protocol()

#region client protocol helpers

class ClientUtil:
	def __init__ ( self,
		parser: Callable[[BYTES],ResponseType],
	) -> None:
		self.parser = parser

	def send ( self, line: str ) -> Iterator[Event]:
		assert line.endswith ( '\r\n' ), f'invalid {line=}'
		yield from ( event := SendDataEvent ( s2b ( line, 'utf-8' ) ) ).go()

	def recv_ok ( self, event: Opt[NeedDataEvent] = None ) -> Iterator[Event]:
		if event is None:
			event = NeedDataEvent()
		yield from event.reset().go()
		event.response = response = self.parser ( event.data or b'' )
		if not response.is_success():
			raise response

	def recv_multi ( self, event: Opt[NeedDataEvent] = None ) -> Generator[Event,None,List[bytes]]:
		# collects body lines up to (and excluding) the bare-dot terminator, undoing dot-stuffing
		if event is None:
			event = NeedDataEvent()
		lines: List[bytes] = []
		while True:
			yield from event.go()
			line = strip_eol ( event.data or b'' )
			if line == b'.':
				return lines
			if line[:1] == b'.':
				line = line[1:]
			lines.append ( line )

	def send_recv_ok ( self, line: str, event: Opt[NeedDataEvent] = None ) -> Iterator[Event]:
		yield from self.send ( line )
		yield from self.recv_ok ( event )

#endregion client protocol helpers
