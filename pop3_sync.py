# system imports:
import logging
from typing import Optional as Opt

# pop3_mime imports:
from event_handling import SyncClient
import pop3_proto as proto
from pop3_proto import SessionState

logger = logging.getLogger ( __name__ )


class Client ( SyncClient ):
	protocls = proto.Client

	def greeting ( self ) -> proto.GreetingResponse:
		return self._request ( proto.GreetingRequest(), SessionState.AUTHORIZATION )

	def capa ( self, state: SessionState ) -> proto.CapaResponse:
		return self._request ( proto.CapaRequest(), state )

	def user ( self, state: SessionState, uid: str ) -> proto.SuccessResponse:
		return self._request ( proto.UserRequest ( uid ), state )

	def pass_ ( self, state: SessionState, pwd: str ) -> proto.SuccessResponse:
		return self._request ( proto.PassRequest ( pwd ), state )

	def apop ( self, state: SessionState, uid: str, pwd: str, challenge: str ) -> proto.SuccessResponse:
		return self._request ( proto.ApopRequest ( uid, pwd, challenge ), state )

	def stat ( self, state: SessionState ) -> proto.StatResponse:
		return self._request ( proto.StatRequest(), state )

	def list ( self, state: SessionState, which: Opt[int] = None ) -> proto.ListResponse:
		return self._request ( proto.ListRequest ( which ), state )

	def uidl ( self, state: SessionState, which: Opt[int] = None ) -> proto.UidlResponse:
		return self._request ( proto.UidlRequest ( which ), state )

	def retr ( self, state: SessionState, which: int ) -> proto.RetrResponse:
		return self._request ( proto.RetrRequest ( which ), state )

	def top ( self, state: SessionState, which: int, lines: int ) -> proto.RetrResponse:
		return self._request ( proto.TopRequest ( which, lines ), state )

	def dele ( self, state: SessionState, which: int ) -> proto.SuccessResponse:
		return self._request ( proto.DeleRequest ( which ), state )

	def noop ( self, state: SessionState ) -> proto.SuccessResponse:
		return self._request ( proto.NoOpRequest(), state )

	def rset ( self, state: SessionState ) -> proto.SuccessResponse:
		return self._request ( proto.RsetRequest(), state )

	def quit ( self, state: SessionState ) -> proto.SuccessResponse:
		return self._request ( proto.QuitRequest(), state )
