# python imports:
import logging
from pathlib import Path
import sys
from typing import List, Tuple
import unittest

if __name__ == '__main__': # pragma: no cover
	sys.path.append ( str ( Path ( __file__ ).parent.parent.absolute() ) )

# pop3_mime imports:
import pop3_proto as proto
from pop3_proto import SessionState

logger = logging.getLogger ( __name__ )

AUTHORIZATION = SessionState.AUTHORIZATION
TRANSACTION = SessionState.TRANSACTION
UPDATE = SessionState.UPDATE


def exchange ( request: proto.Request, state: SessionState, *replies: bytes ) -> Tuple[List[bytes],proto.Response]:
	cli = proto.Client()
	sent: List[bytes] = []
	for evt in cli.send ( request, state ):
		assert isinstance ( evt, proto.SendDataEvent ), f'unexpected {evt=}'
		sent.extend ( evt.chunks )
	for data in replies:
		for evt in cli.receive ( data ):
			raise AssertionError ( f'unexpected {evt=}' )
	assert cli.request is None, f'{request!r} did not finish'
	return sent, request.response


class Tests ( unittest.TestCase ):
	def test_response_parse ( self ) -> None:
		test = self
		test.assertEqual (
			repr ( proto.Response.parse ( b'+OK maildrop locked and ready\r\n' ) ),
			"pop3_proto.SuccessResponse(True, 'maildrop locked and ready')",
		)
		test.assertEqual (
			repr ( proto.Response.parse ( b'-ERR permission denied\r\n' ) ),
			"pop3_proto.ErrorResponse(False, 'permission denied')",
		)
		test.assertEqual ( proto.Response.parse ( b'+OK\r\n' ).message, '' )
		for line in ( b'', b'\r\n', b'OK fine\r\n', b'+ok fine\r\n', b'* 1 EXISTS\r\n' ):
			with test.assertRaises ( proto.ProtocolFormatError ):
				proto.Response.parse ( line )
		with test.assertRaises ( proto.ProtocolFormatError ) as cm:
			proto.Response.parse ( b'220 smtp.example.com ESMTP\r\n' )
		test.assertIn ( '220 smtp.example.com', cm.exception.args[0] )

	def test_greeting ( self ) -> None:
		test = self
		sent, r = exchange ( proto.GreetingRequest(), AUTHORIZATION,
			b'+OK POP3 server ready <1896.697170952@dbc.mtview.ca.us>\r\n',
		)
		test.assertEqual ( sent, [] )
		assert isinstance ( r, proto.GreetingResponse )
		test.assertEqual ( r.apop_challenge, '<1896.697170952@dbc.mtview.ca.us>' )

		sent, r = exchange ( proto.GreetingRequest(), AUTHORIZATION, b'+OK hello\r\n' )
		assert isinstance ( r, proto.GreetingResponse )
		test.assertIsNone ( r.apop_challenge )

		with test.assertRaises ( proto.ErrorResponse ):
			exchange ( proto.GreetingRequest(), AUTHORIZATION, b'-ERR too busy\r\n' )

	def test_request_lines ( self ) -> None:
		test = self
		for request, line in (
			( proto.CapaRequest(), 'CAPA\r\n' ),
			( proto.UserRequest ( 'mrose' ), 'USER mrose\r\n' ),
			( proto.PassRequest ( 'tanstaaf' ), 'PASS tanstaaf\r\n' ),
			( proto.ApopRequest ( 'mrose', 'tanstaaf', '<1896.697170952@dbc.mtview.ca.us>' ), 'APOP mrose c4c9334bac560ecc979e58001b3e22fb\r\n' ),
			( proto.StatRequest(), 'STAT\r\n' ),
			( proto.ListRequest(), 'LIST\r\n' ),
			( proto.ListRequest ( 0 ), 'LIST 0\r\n' ),
			( proto.ListRequest ( 2 ), 'LIST 2\r\n' ),
			( proto.UidlRequest(), 'UIDL\r\n' ),
			( proto.UidlRequest ( 3 ), 'UIDL 3\r\n' ),
			( proto.RetrRequest ( 1 ), 'RETR 1\r\n' ),
			( proto.TopRequest ( 1, 0 ), 'TOP 1 0\r\n' ),
			( proto.DeleRequest ( 7 ), 'DELE 7\r\n' ),
			( proto.NoOpRequest(), 'NOOP\r\n' ),
			( proto.RsetRequest(), 'RSET\r\n' ),
			( proto.QuitRequest(), 'QUIT\r\n' ),
		):
			test.assertEqual ( request.request_line(), line )
			test.assertTrue ( request.request_line().endswith ( '\r\n' ) )
		test.assertEqual ( repr ( proto.ListRequest ( 2 ) ), 'pop3_proto.ListRequest(2)' )
		test.assertEqual ( repr ( proto.PassRequest ( 'tanstaaf' ) ), 'pop3_proto.PassRequest(...)' )

	def test_verb_table ( self ) -> None:
		test = self
		test.assertIs ( proto._request_verbs['LIST'], proto.ListRequest )
		test.assertIs ( proto._request_verbs['QUIT'], proto.QuitRequest )
		test.assertNotIn ( 'STLS', proto._request_verbs )
		test.assertEqual ( proto.QuitRequest.legal_states, AUTHORIZATION | TRANSACTION )
		test.assertEqual ( proto.UserRequest.legal_states, AUTHORIZATION )
		test.assertEqual ( proto.RsetRequest.legal_states, TRANSACTION )
		test.assertTrue ( proto.ListRequest().multiline )
		test.assertFalse ( proto.ListRequest ( 1 ).multiline )
		test.assertFalse ( proto.UserRequest.multiline )
		test.assertTrue ( proto.RetrRequest.multiline )

	def test_state_gating ( self ) -> None:
		test = self
		for request, state in (
			( proto.UserRequest ( 'mrose' ), TRANSACTION ),
			( proto.PassRequest ( 'tanstaaf' ), UPDATE ),
			( proto.RsetRequest(), AUTHORIZATION ),
			( proto.ListRequest(), AUTHORIZATION ),
			( proto.RetrRequest ( 1 ), AUTHORIZATION ),
			( proto.QuitRequest(), UPDATE ),
			( proto.GreetingRequest(), TRANSACTION ),
			# no state, or more than one at once, is never legal
			( proto.RsetRequest(), SessionState ( 0 ) ),
			( proto.NoOpRequest(), SessionState ( 0 ) ),
			( proto.QuitRequest(), SessionState ( 0 ) ),
			( proto.QuitRequest(), AUTHORIZATION | TRANSACTION ),
			( proto.CapaRequest(), AUTHORIZATION | TRANSACTION ),
			( proto.ListRequest(), TRANSACTION | UPDATE ),
		):
			cli = proto.Client()
			events = []
			with test.assertRaises ( proto.ProtocolStateError ):
				for evt in cli.send ( request, state ):
					events.append ( evt )
			test.assertEqual ( events, [] )
			test.assertIsNone ( request.base_response )

		for state in ( AUTHORIZATION, TRANSACTION ):
			sent, r = exchange ( proto.QuitRequest(), state, b'+OK dewey POP3 server signing off\r\n' )
			test.assertEqual ( sent, [ b'QUIT\r\n' ] )

	def test_invalid_arguments ( self ) -> None:
		test = self
		for factory in (
			lambda: proto.ListRequest ( -1 ),
			lambda: proto.UidlRequest ( 0 ),
			lambda: proto.RetrRequest ( 0 ),
			lambda: proto.TopRequest ( 1, -1 ),
			lambda: proto.DeleRequest ( -3 ),
			lambda: proto.ListRequest ( True ),
			lambda: proto.ListRequest ( '1' ), # type: ignore
			lambda: proto.UserRequest ( '' ),
			lambda: proto.UserRequest ( 'mrose\r\nDELE 1' ),
			lambda: proto.PassRequest ( '' ),
			lambda: proto.ApopRequest ( 'm rose', 'tanstaaf', '<1@x>' ),
			lambda: proto.ApopRequest ( 'mrose', 'tanstaaf', '1@x' ),
		):
			with test.assertRaises ( proto.InvalidArgument ):
				factory()
		test.assertTrue ( issubclass ( proto.InvalidArgument, ValueError ) )
		test.assertFalse ( issubclass ( proto.InvalidArgument, proto.ProtocolError ) )

	def test_simple_commands ( self ) -> None:
		test = self
		for request, state in (
			( proto.UserRequest ( 'mrose' ), AUTHORIZATION ),
			( proto.PassRequest ( 'tanstaaf' ), AUTHORIZATION ),
			( proto.DeleRequest ( 1 ), TRANSACTION ),
			( proto.NoOpRequest(), TRANSACTION ),
			( proto.RsetRequest(), TRANSACTION ),
		):
			sent, r = exchange ( request, state, b'+OK fine\r\n' )
			test.assertEqual ( sent, [ request.request_line().encode() ] )
			test.assertEqual ( repr ( r ), "pop3_proto.SuccessResponse(True, 'fine')" )

		with test.assertRaises ( proto.ErrorResponse ) as cm:
			exchange ( proto.DeleRequest ( 9 ), TRANSACTION, b'-ERR message 9 already deleted\r\n' )
		test.assertFalse ( cm.exception.ok )
		test.assertEqual ( cm.exception.message, 'message 9 already deleted' )

	def test_stat ( self ) -> None:
		test = self
		sent, r = exchange ( proto.StatRequest(), TRANSACTION, b'+OK 2 320\r\n' )
		assert isinstance ( r, proto.StatResponse )
		test.assertEqual ( ( r.count, r.octets ), ( 2, 320 ) )
		for reply in ( b'+OK 2\r\n', b'+OK two 320\r\n', b'+OK 2 -320\r\n' ):
			with test.assertRaises ( proto.ProtocolFormatError ):
				exchange ( proto.StatRequest(), TRANSACTION, reply )

	def test_list_single ( self ) -> None:
		test = self
		for n, m in ( ( 0, 0 ), ( 1, 120 ), ( 2, 200 ), ( 65535, 2**40 ) ):
			sent, r = exchange ( proto.ListRequest ( n ), TRANSACTION, f'+OK {n} {m}\r\n'.encode() )
			test.assertEqual ( sent, [ f'LIST {n}\r\n'.encode() ] )
			assert isinstance ( r, proto.ListResponse )
			test.assertEqual ( r.messages, [ proto.ListMessage ( n, m ) ] )
			test.assertEqual ( r.lines, () )

		with test.assertRaises ( proto.ProtocolFormatError ) as cm:
			exchange ( proto.ListRequest ( 2 ), TRANSACTION, b'+OK 2\r\n' )
		test.assertEqual ( cm.exception.args[0], 'invalid response message: 2' )

		with test.assertRaises ( proto.ErrorResponse ):
			exchange ( proto.ListRequest ( 3 ), TRANSACTION, b'-ERR no such message, only 2 messages in maildrop\r\n' )

	def test_list_multi ( self ) -> None:
		test = self
		for pairs in (
			[],
			[ ( 1, 120 ) ],
			[ ( 1, 120 ), ( 2, 200 ), ( 5, 0 ), ( 17, 1048576 ) ],
		):
			body = b''.join ( f'{id} {octets}\r\n'.encode() for id, octets in pairs )
			sent, r = exchange ( proto.ListRequest(), TRANSACTION,
				f'+OK {len(pairs)} messages\r\n'.encode() + body + b'.\r\n',
			)
			test.assertEqual ( sent, [ b'LIST\r\n' ] )
			assert isinstance ( r, proto.ListResponse )
			test.assertEqual ( r.messages, [ proto.ListMessage ( *pair ) for pair in pairs ] )

		# reply trickling in one line at a time
		sent, r = exchange ( proto.ListRequest(), TRANSACTION,
			b'+OK 2 messages (320 octets)\r\n', b'1 12', b'0\r\n2 200\r', b'\n', b'.\r\n',
		)
		assert isinstance ( r, proto.ListResponse )
		test.assertEqual ( r.messages, [ ( 1, 120 ), ( 2, 200 ) ] )
		test.assertEqual ( r.message, '2 messages (320 octets)' )

		for bad in ( b'1', b'', b'x 120', b'1 -5' ):
			with test.assertRaises ( proto.ProtocolFormatError ) as cm:
				exchange ( proto.ListRequest(), TRANSACTION, b'+OK\r\n1 120\r\n' + bad + b'\r\n.\r\n' )
			test.assertEqual ( cm.exception.args[0], f'invalid line in multiline response: {bad.decode()}' )

	def test_uidl ( self ) -> None:
		test = self
		sent, r = exchange ( proto.UidlRequest(), TRANSACTION,
			b'+OK\r\n1 whqtswO00WBw418f9t5JxYwZ\r\n2 QhdPYR:00WBw1Ph7x7\r\n.\r\n',
		)
		assert isinstance ( r, proto.UidlResponse )
		test.assertEqual ( r.messages, [
			proto.UidlMessage ( 1, 'whqtswO00WBw418f9t5JxYwZ' ),
			proto.UidlMessage ( 2, 'QhdPYR:00WBw1Ph7x7' ),
		] )
		sent, r = exchange ( proto.UidlRequest ( 2 ), TRANSACTION, b'+OK 2 QhdPYR:00WBw1Ph7x7\r\n' )
		assert isinstance ( r, proto.UidlResponse )
		test.assertEqual ( r.messages, [ proto.UidlMessage ( 2, 'QhdPYR:00WBw1Ph7x7' ) ] )
		with test.assertRaises ( proto.ProtocolFormatError ):
			exchange ( proto.UidlRequest ( 2 ), TRANSACTION, b'+OK 2\r\n' )

	def test_retr ( self ) -> None:
		test = self
		sent, r = exchange ( proto.RetrRequest ( 1 ), TRANSACTION,
			b'+OK 120 octets\r\n'
			b'Subject: =?utf-8?B?aGVsbG8=?=\r\n'
			b'\r\n'
			b'..hidden dot\r\n'
			b'caf\xe9\r\n'
			b'.\r\n'
		)
		test.assertEqual ( sent, [ b'RETR 1\r\n' ] )
		assert isinstance ( r, proto.RetrResponse )
		test.assertEqual ( r.lines, ( b'Subject: =?utf-8?B?aGVsbG8=?=', b'', b'.hidden dot', b'caf\xe9' ) )
		test.assertEqual ( r.content, b'Subject: =?utf-8?B?aGVsbG8=?=\r\n\r\n.hidden dot\r\ncaf\xe9\r\n' )

		sent, r = exchange ( proto.TopRequest ( 1, 0 ), TRANSACTION, b'+OK\r\nSubject: hi\r\n\r\n.\r\n' )
		test.assertEqual ( sent, [ b'TOP 1 0\r\n' ] )
		assert isinstance ( r, proto.RetrResponse )
		test.assertEqual ( r.lines, ( b'Subject: hi', b'' ) )

		# no body follows an error
		cli = proto.Client()
		req = proto.RetrRequest ( 5 )
		list ( cli.send ( req, TRANSACTION ) )
		with test.assertRaises ( proto.ErrorResponse ):
			list ( cli.receive ( b'-ERR no such message\r\n' ) )
		test.assertIsNone ( cli.request )

	def test_capa ( self ) -> None:
		test = self
		sent, r = exchange ( proto.CapaRequest(), AUTHORIZATION,
			b'+OK Capability list follows\r\nTOP\r\nUSER\r\nSASL CRAM-MD5 KERBEROS_V4\r\nRESP-CODES\r\n.\r\n',
		)
		test.assertEqual (
			repr ( r ),
			"pop3_proto.CapaResponse(True, 'Capability list follows', capa={'RESP-CODES': '', 'SASL': 'CRAM-MD5 KERBEROS_V4', 'TOP': '', 'USER': ''})",
		)

	def test_eof ( self ) -> None:
		test = self
		cli = proto.Client()
		list ( cli.send ( proto.ListRequest(), TRANSACTION ) )
		list ( cli.receive ( b'+OK\r\n1 120\r\n' ) )
		with test.assertRaises ( proto.Closed ):
			list ( cli.receive ( b'' ) )

	def test_version ( self ) -> None:
		self.assertEqual ( str ( proto.__version__ ), '0.1.0' )

if __name__ == '__main__':
	logging.basicConfig ( level = logging.DEBUG )
	unittest.main()
