#region PROLOGUE --------------------------------------------------------------
from __future__ import annotations

# python imports:
import base64
import binascii
import codecs
import email.message
import email.parser
import email.policy
from enum import Enum
import logging
import os
import re
from typing import (
	Iterable, Iterator, List, NamedTuple, Optional as Opt,
	Sequence as Seq, Tuple,
)

# pop3_mime imports:
from util import BYTES, s2b

logger = logging.getLogger ( __name__ )


class DecodeError ( ValueError ):
	pass


#endregion
#region CODECS ----------------------------------------------------------------

_hexdigits = frozenset ( b'0123456789ABCDEFabcdef' )
_r_whitespace = re.compile ( rb'\s+' )

CRLF = b'\r\n'


def _qp_unquote ( line: bytes, out: bytearray, soft_breaks: bool ) -> bool:
	# appends the decoded line to out, returns True if it ended in a soft line break
	i = 0
	end = len ( line )
	while i < end:
		b = line[i]
		if b != 0x3D: # '='
			out.append ( b )
			i += 1
		elif i + 1 == end and soft_breaks:
			return True
		elif i + 2 < end and line[i+1] in _hexdigits and line[i+2] in _hexdigits:
			out.append ( int ( line[i+1:i+3], 16 ) )
			i += 3
		else: # not an escape, leave it alone
			out.append ( b )
			i += 1
	return False


def qp_decode ( lines: Iterable[BYTES] ) -> bytes:
	out = bytearray()
	hard_break = False
	for line in lines:
		if hard_break:
			out += CRLF
		# RFC2045#6.7(3): trailing whitespace is transport padding
		hard_break = not _qp_unquote ( bytes ( line ).rstrip ( b' \t' ), out, True )
	return bytes ( out )


def qp_decode_line ( text: str ) -> bytes:
	out = bytearray()
	_qp_unquote ( s2b ( text, 'utf-8' ), out, False )
	return bytes ( out )


def b64_decode ( lines: Iterable[BYTES] ) -> bytes:
	# base64 wraps across content lines but is one payload
	data = _r_whitespace.sub ( b'', b''.join ( map ( bytes, lines ) ) )
	try:
		return base64.b64decode ( data, validate = True )
	except binascii.Error as e:
		raise DecodeError ( f'malformed base64 content: {e}' ) from e


#endregion
#region CHARSETS --------------------------------------------------------------

_WESTERN = codecs.lookup ( 'iso-8859-1' )
_WINDOWS = codecs.lookup ( 'windows-1252' )
_r_windows_range = re.compile ( rb'[\x80-\x92]' )

_WINDOWS_ERRORS = 'pop3mime-latin1'

def _latin1_fallback ( e: UnicodeError ) -> Tuple[str,int]:
	# windows-1252 leaves 0x81, 0x8D, 0x8F, 0x90 and 0x9D undefined
	if not isinstance ( e, UnicodeDecodeError ):
		raise e
	return e.object[e.start:e.end].decode ( 'latin-1' ), e.end

codecs.register_error ( _WINDOWS_ERRORS, _latin1_fallback )


def resolve_charset ( name: str, data: BYTES = b'' ) -> codecs.CodecInfo:
	log = logger.getChild ( 'resolve_charset' )
	try:
		info = codecs.lookup ( name.strip().strip ( '"' ) )
	except LookupError as e:
		raise DecodeError ( f'unknown charset {name!r}' ) from e
	# mail labelled iso-8859-1 is very often really windows-1252
	if info.name == _WESTERN.name and _r_windows_range.search ( data ):
		log.debug ( f'{name!r} content has bytes in 0x80-0x92, using {_WINDOWS.name}' )
		return _WINDOWS
	return info


def decode_bytes ( data: BYTES, charset: str ) -> str:
	info = resolve_charset ( charset, data )
	errors = _WINDOWS_ERRORS if info.name == _WINDOWS.name else 'strict'
	try:
		return bytes ( data ).decode ( info.name, errors )
	except ( LookupError, UnicodeDecodeError ) as e: # LookupError: not a text encoding
		raise DecodeError ( f'unable to decode content as {charset!r}: {e}' ) from e


def _decode ( data: BYTES, charset: Opt[str], default: str ) -> str:
	if charset:
		return decode_bytes ( data, charset )
	try:
		return bytes ( data ).decode ( default )
	except UnicodeDecodeError as e:
		raise DecodeError ( f'unable to decode content as {default!r}: {e}' ) from e


#endregion
#region ENTITIES --------------------------------------------------------------

class TransferEncoding ( Enum ):
	SEVEN_BIT = '7bit'
	EIGHT_BIT = '8bit'
	BINARY = 'binary'
	QUOTED_PRINTABLE = 'quoted-printable'
	BASE64 = 'base64'

	@classmethod
	def parse ( cls, value: Opt[str] ) -> TransferEncoding:
		log = logger.getChild ( 'TransferEncoding.parse' )
		try:
			return cls ( ( value or '7bit' ).strip().lower() )
		except ValueError:
			log.debug ( f'unrecognized Content-Transfer-Encoding {value=}, treating as 7bit' )
			return cls.SEVEN_BIT


class MimeEntity ( NamedTuple ):
	transfer_encoding: TransferEncoding
	charset: Opt[str]
	content_lines: Seq[bytes] # without line terminators

	@classmethod
	def from_message ( cls, msg: email.message.Message ) -> MimeEntity:
		payload = msg.get_payload()
		if not isinstance ( payload, str ):
			raise ValueError ( 'multipart entities have no content of their own' )
		encoding = TransferEncoding.parse ( msg.get ( 'Content-Transfer-Encoding' ) )
		if encoding in ( TransferEncoding.BASE64, TransferEncoding.QUOTED_PRINTABLE ):
			data = s2b ( payload, 'utf-8', 'surrogateescape' )
		else:
			# get_payload() would re-decode 8bit text with the declared charset, we want the raw bytes
			data = msg.get_payload ( decode = True )
		return cls (
			encoding,
			msg.get_content_charset(),
			data.splitlines(),
		)


def parse_message ( raw: BYTES ) -> email.message.Message:
	return email.parser.BytesParser ( policy = email.policy.compat32 ).parsebytes ( bytes ( raw ) )


def iter_entities ( raw: BYTES ) -> Iterator[MimeEntity]:
	for part in parse_message ( raw ).walk():
		if not part.is_multipart():
			yield MimeEntity.from_message ( part )


#endregion
#region DECODING --------------------------------------------------------------

def decode_content ( entity: MimeEntity ) -> str:
	if entity.transfer_encoding is TransferEncoding.BASE64:
		return _decode ( b64_decode ( entity.content_lines ), entity.charset, 'latin-1' )
	elif entity.transfer_encoding is TransferEncoding.QUOTED_PRINTABLE:
		return _decode ( qp_decode ( entity.content_lines ), entity.charset, 'utf-8' )
	lines: List[str] = [
		_decode ( line, entity.charset, 'latin-1' ) for line in entity.content_lines
	]
	return os.linesep.join ( lines )


#endregion
#region ENCODED WORDS ---------------------------------------------------------

# ex: =?iso-8859-1?Q?Fr=E9d=E9ric_Vandal?=
_r_encoded_word = re.compile ( r'\s*=\?([^?]+)\?([BbQq])\?([^?]+)\?=' )


def _decode_encoded_word ( m: re.Match[str] ) -> str:
	charset, encoding, data = m.groups()
	charset = charset.split ( '*', 1 )[0] # RFC2231 language suffix
	if encoding.upper() == 'B':
		return decode_bytes ( b64_decode ( [ s2b ( data, 'utf-8' ) ] ), charset )
	return decode_bytes ( qp_decode_line ( data.replace ( '_', '=20' ) ), charset )


def decode_encoded_words ( value: Opt[str] ) -> Opt[str]:
	if not value or not value.strip():
		return None
	return _r_encoded_word.sub ( _decode_encoded_word, value )

#endregion
