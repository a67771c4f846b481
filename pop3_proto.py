#region PROLOGUE --------------------------------------------------------------
from __future__ import annotations

# python imports:
from enum import Flag, auto
import hashlib
import logging
import re
from typing import (
	Callable, Dict, List, NamedTuple, Optional as Opt, Sequence as Seq, Tuple,
	Type, TypeVar, Union,
)

import packaging.version # pip install packaging

# pop3_mime imports:
from base_proto import (
	BaseResponse, ResponseType, RequestT, Event, NeedDataEvent, SendDataEvent, Closed,
	RequestProtocolGenerator, ClientProtocol, ClientUtil, InvalidArgument,
	ProtocolError, ProtocolStateError, ProtocolFormatError, ProtocolTimeout,
)
from util import BYTES, b2s, s2b, strip_eol

__version__ = packaging.version.parse ( '0.1.0' )

logger = logging.getLogger ( __name__ )


_r_eol = re.compile ( r'[\r\n]' )


class SessionState ( Flag ):
	AUTHORIZATION = auto()
	TRANSACTION = auto()
	UPDATE = auto()


#endregion
#region RESPONSES -------------------------------------------------------------

def _text ( line: BYTES ) -> str:
	try:
		return b2s ( line )
	except UnicodeDecodeError as e:
		raise ProtocolFormatError ( f'non-ascii data in response {bytes(line)!r}' ) from e


def _fields ( text: str, count: int, complaint: str ) -> List[str]:
	fields = text.split()
	if len ( fields ) < count:
		raise ProtocolFormatError ( f'{complaint}: {text}' )
	return fields


def _octets ( field: str, complaint: str, text: str ) -> int:
	try:
		value = int ( field )
	except ValueError as e:
		raise ProtocolFormatError ( f'{complaint}: {text}' ) from e
	if value < 0:
		raise ProtocolFormatError ( f'{complaint}: {text}' )
	return value


class Response ( BaseResponse ):
	def __init__ ( self, ok: bool, message: str ) -> None:
		self.ok = ok
		self.message = message
		super().__init__()

	@staticmethod
	def parse ( line: BYTES ) -> Union[SuccessResponse,ErrorResponse]:
		#log = logger.getChild ( 'Response.parse' )
		ok, *extra = b2s ( strip_eol ( line ), 'utf-8', 'replace' ).split ( ' ', 1 )
		if ok not in ( '+OK', '-ERR' ):
			raise ProtocolFormatError ( f'malformed response from server line={bytes(line)!r}' )
		text = extra[0].rstrip() if extra else ''
		if ok == '+OK':
			return SuccessResponse ( text )
		else:
			return ErrorResponse ( text )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}({self.ok!r}, {self.message!r})'


class SuccessResponse ( Response ):
	def __init__ ( self, message: str ) -> None:
		return super().__init__ ( True, message )
	def is_success ( self ) -> bool:
		return True


class ErrorResponse ( Response ):
	def __init__ ( self, message: str ) -> None:
		return super().__init__ ( False, message )
	def is_success ( self ) -> bool:
		return False


class GreetingResponse ( SuccessResponse ):
	apop_challenge: Opt[str]

	def __init__ ( self, message: str ) -> None:
		m = re.search ( r'(<.*>)', message )
		self.apop_challenge = m.group ( 1 ) if m else None
		super().__init__ ( message )


class MultiResponse ( SuccessResponse ):
	def __init__ ( self, message: str, *lines: bytes ) -> None:
		self.lines: Tuple[bytes,...] = lines
		super().__init__ ( message )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		lines_ = ''.join ( f', {line!r}' for line in self.lines )
		return f'{cls.__module__}.{cls.__name__}({self.ok!r}, {self.message!r}{lines_})'


class CapaResponse ( MultiResponse ): # RFC2449
	capa: Dict[str,str]

	def __init__ ( self, message: str, *lines: bytes ) -> None:
		super().__init__ ( message, *lines )
		self.capa = {}
		for line in map ( _text, lines ):
			capa_name, *capa_params = line.split ( ' ', 1 )
			self.capa[capa_name.upper()] = capa_params[0].rstrip() if capa_params else ''

	def __repr__ ( self ) -> str:
		cls = type ( self )
		capa_ = ', '.join ( [
			f'{k!r}: {v!r}' for k, v in sorted ( self.capa.items() )
		] )
		return f'{cls.__module__}.{cls.__name__}({self.ok!r}, {self.message!r}, capa={{{capa_}}})'


class StatResponse ( SuccessResponse ):
	count: int
	octets: int

	def __init__ ( self, message: str ) -> None:
		complaint = 'invalid STAT response'
		count, octets, *_ = _fields ( message, 2, complaint )
		self.count = _octets ( count, complaint, message )
		self.octets = _octets ( octets, complaint, message )
		super().__init__ ( message )


class ListMessage ( NamedTuple ):
	id: int
	octets: int

	@classmethod
	def parse ( cls, text: str, complaint: str ) -> ListMessage:
		id, octets, *_ = _fields ( text, 2, complaint )
		return cls ( _octets ( id, complaint, text ), _octets ( octets, complaint, text ) )


class ListResponse ( MultiResponse ):
	messages: List[ListMessage]

	def __init__ ( self, message: str, *lines: bytes ) -> None:
		super().__init__ ( message, *lines )
		self.messages = [
			ListMessage.parse ( _text ( line ), 'invalid line in multiline response' )
			for line in lines
		]

	@classmethod
	def single ( cls, message: str ) -> ListResponse:
		# '+OK 2 200': the status text itself carries the scan listing
		self = cls ( message )
		self.messages = [ ListMessage.parse ( message, 'invalid response message' ) ]
		return self


class UidlMessage ( NamedTuple ):
	id: int
	uid: str

	@classmethod
	def parse ( cls, text: str, complaint: str ) -> UidlMessage:
		id, uid, *_ = _fields ( text, 2, complaint )
		return cls ( _octets ( id, complaint, text ), uid )


class UidlResponse ( MultiResponse ):
	messages: List[UidlMessage]

	def __init__ ( self, message: str, *lines: bytes ) -> None:
		super().__init__ ( message, *lines )
		self.messages = [
			UidlMessage.parse ( _text ( line ), 'invalid line in multiline response' )
			for line in lines
		]

	@classmethod
	def single ( cls, message: str ) -> UidlResponse:
		self = cls ( message )
		self.messages = [ UidlMessage.parse ( message, 'invalid response message' ) ]
		return self


class RetrResponse ( MultiResponse ):
	@property
	def content ( self ) -> bytes:
		# the message as it sits in the maildrop, CRLF line endings restored
		return b''.join ( line + b'\r\n' for line in self.lines )


client_util = ClientUtil ( Response.parse )

#endregion
#region REQUESTS --------------------------------------------------------------

class Request ( RequestT[ResponseType] ):
	verb: str
	multiline: bool = False

	def __repr__ ( self ) -> str:
		cls = type ( self )
		args_ = ', '.join ( map ( repr, self.args() ) )
		return f'{cls.__module__}.{cls.__name__}({args_})'

	def args ( self ) -> Seq[Union[str,int]]:
		return ()

	def request_line ( self ) -> str:
		return ' '.join ( [ self.verb, *map ( str, self.args() ) ] ) + '\r\n'

	def _client_protocol ( self, client: ClientProtocol ) -> RequestProtocolGenerator:
		assert isinstance ( client, Client )
		yield from self.client_protocol ( client )

	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		event = NeedDataEvent()
		yield from client_util.send_recv_ok ( self.request_line(), event )
		assert isinstance ( event.response, Response )
		lines: List[bytes] = []
		if self.multiline:
			lines = yield from client_util.recv_multi ( event )
		raise self.parse_response ( event.response, lines )

	def parse_response ( self, status: Response, lines: Seq[bytes] ) -> ResponseType:
		return self.responsecls ( status.message, *lines ) # type: ignore


_request_verbs: Dict[str,Type[Request]] = {} # type: ignore

RequestClass = TypeVar ( 'RequestClass', bound = Type[Request] ) # type: ignore

def request_verb (
	verb: str,
	legal_states: SessionState,
	*,
	multiline: bool = False,
) -> Callable[[RequestClass],RequestClass]:
	def registrar ( cls: RequestClass ) -> RequestClass:
		global _request_verbs
		assert verb == verb.upper() and ' ' not in verb and 3 <= len ( verb ) <= 4, f'invalid {verb=}' # RFC1939#3 keywords
		assert verb not in _request_verbs, f'duplicate request verb {verb!r}'
		cls.verb = verb
		cls.legal_states = legal_states
		cls.multiline = multiline
		_request_verbs[verb] = cls
		return cls
	return registrar


def _message_number ( value: int, name: str, minimum: int = 1 ) -> int:
	if isinstance ( value, bool ) or not isinstance ( value, int ) or value < minimum:
		raise InvalidArgument ( f'invalid {name}={value!r}' )
	return value


def _argument ( value: str, name: str ) -> str:
	if not isinstance ( value, str ) or not value or _r_eol.search ( value ):
		raise InvalidArgument ( f'invalid {name}={value!r}' )
	return value


class GreetingRequest ( Request[GreetingResponse] ):
	responsecls = GreetingResponse
	legal_states = SessionState.AUTHORIZATION

	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		#log = logger.getChild ( 'GreetingRequest.client_protocol' )
		event = NeedDataEvent()
		yield from client_util.recv_ok ( event )
		assert isinstance ( event.response, Response )
		raise GreetingResponse ( event.response.message )


@request_verb ( 'CAPA', SessionState.AUTHORIZATION | SessionState.TRANSACTION, multiline = True )
class CapaRequest ( Request[CapaResponse] ): # RFC2449
	responsecls = CapaResponse


@request_verb ( 'USER', SessionState.AUTHORIZATION )
class UserRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse

	def __init__ ( self, uid: str ) -> None:
		self.uid = _argument ( uid, 'uid' )

	def args ( self ) -> Seq[Union[str,int]]:
		return ( self.uid, )


@request_verb ( 'PASS', SessionState.AUTHORIZATION )
class PassRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse

	def __init__ ( self, pwd: str ) -> None:
		self.pwd = _argument ( pwd, 'pwd' )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}(...)'

	def args ( self ) -> Seq[Union[str,int]]:
		return ( self.pwd, )


def apop_hash ( challenge: str, pwd: str ) -> str:
	return hashlib.md5 ( s2b ( f'{challenge}{pwd}', 'utf-8' ) ).hexdigest()


@request_verb ( 'APOP', SessionState.AUTHORIZATION )
class ApopRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse

	def __init__ ( self, uid: str, pwd: str, challenge: str ) -> None:
		if ' ' in _argument ( uid, 'uid' ):
			raise InvalidArgument ( f'invalid {uid=}' )
		if not ( challenge[0:1] == '<' and challenge[-1:] == '>' ):
			raise InvalidArgument ( f'invalid {challenge=}' )
		self.uid = uid
		self.challenge = challenge
		self.digest = apop_hash ( challenge, pwd )

	def args ( self ) -> Seq[Union[str,int]]:
		return ( self.uid, self.digest )


@request_verb ( 'STAT', SessionState.TRANSACTION )
class StatRequest ( Request[StatResponse] ):
	responsecls = StatResponse


@request_verb ( 'LIST', SessionState.TRANSACTION, multiline = True )
class ListRequest ( Request[ListResponse] ):
	responsecls = ListResponse
	which: Opt[int] = None

	def __init__ ( self, which: Opt[int] = None ) -> None:
		if which is not None:
			self.which = _message_number ( which, 'which', 0 )
			self.multiline = False

	def args ( self ) -> Seq[Union[str,int]]:
		return () if self.which is None else ( self.which, )

	def parse_response ( self, status: Response, lines: Seq[bytes] ) -> ListResponse:
		if self.multiline:
			return ListResponse ( status.message, *lines )
		return ListResponse.single ( status.message )


@request_verb ( 'UIDL', SessionState.TRANSACTION, multiline = True )
class UidlRequest ( Request[UidlResponse] ):
	responsecls = UidlResponse
	which: Opt[int] = None

	def __init__ ( self, which: Opt[int] = None ) -> None:
		if which is not None:
			self.which = _message_number ( which, 'which' )
			self.multiline = False

	def args ( self ) -> Seq[Union[str,int]]:
		return () if self.which is None else ( self.which, )

	def parse_response ( self, status: Response, lines: Seq[bytes] ) -> UidlResponse:
		if self.multiline:
			return UidlResponse ( status.message, *lines )
		return UidlResponse.single ( status.message )


@request_verb ( 'RETR', SessionState.TRANSACTION, multiline = True )
class RetrRequest ( Request[RetrResponse] ):
	responsecls = RetrResponse

	def __init__ ( self, which: int ) -> None:
		self.which = _message_number ( which, 'which' )

	def args ( self ) -> Seq[Union[str,int]]:
		return ( self.which, )


@request_verb ( 'TOP', SessionState.TRANSACTION, multiline = True )
class TopRequest ( Request[RetrResponse] ):
	responsecls = RetrResponse

	def __init__ ( self, which: int, lines: int ) -> None:
		self.which = _message_number ( which, 'which' )
		self.lines = _message_number ( lines, 'lines', 0 )

	def args ( self ) -> Seq[Union[str,int]]:
		return ( self.which, self.lines )


@request_verb ( 'DELE', SessionState.TRANSACTION )
class DeleRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse

	def __init__ ( self, which: int ) -> None:
		self.which = _message_number ( which, 'which' )

	def args ( self ) -> Seq[Union[str,int]]:
		return ( self.which, )


@request_verb ( 'NOOP', SessionState.TRANSACTION )
class NoOpRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse


@request_verb ( 'RSET', SessionState.TRANSACTION )
class RsetRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse


@request_verb ( 'QUIT', SessionState.AUTHORIZATION | SessionState.TRANSACTION )
class QuitRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse

#endregion
#region CLIENT ----------------------------------------------------------------

class Client ( ClientProtocol ):
	_MAXLINE = 8192

#endregion
