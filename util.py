from typing import Union

BYTES = Union[bytes,bytearray,memoryview]
bytes_types = ( bytes, bytearray, memoryview )

def b2s ( b: BYTES, encoding: str = 'us-ascii', errors: str = 'strict' ) -> str:
	return bytes ( b ).decode ( encoding, errors )

def s2b ( s: str, encoding: str = 'us-ascii', errors: str = 'strict' ) -> bytes:
	return s.encode ( encoding, errors )

def strip_eol ( line: BYTES ) -> bytes:
	# removes exactly one line terminator (CRLF or bare LF)
	b = bytes ( line )
	if b.endswith ( b'\r\n' ):
		return b[:-2]
	if b.endswith ( b'\n' ):
		return b[:-1]
	return b
