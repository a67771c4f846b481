# system imports:
import logging
from typing import Optional as Opt

# pop3_mime imports:
from event_handling import AsyncClient
import pop3_proto as proto
from pop3_proto import SessionState

logger = logging.getLogger ( __name__ )


class Client ( AsyncClient ):
	protocls = proto.Client

	async def greeting ( self ) -> proto.GreetingResponse:
		return await self._request ( proto.GreetingRequest(), SessionState.AUTHORIZATION )

	async def capa ( self, state: SessionState ) -> proto.CapaResponse:
		#log = logger.getChild ( 'Client.capa' )
		return await self._request ( proto.CapaRequest(), state )

	async def user ( self, state: SessionState, uid: str ) -> proto.SuccessResponse:
		return await self._request ( proto.UserRequest ( uid ), state )

	async def pass_ ( self, state: SessionState, pwd: str ) -> proto.SuccessResponse:
		return await self._request ( proto.PassRequest ( pwd ), state )

	async def apop ( self, state: SessionState, uid: str, pwd: str, challenge: str ) -> proto.SuccessResponse:
		return await self._request ( proto.ApopRequest ( uid, pwd, challenge ), state )

	async def stat ( self, state: SessionState ) -> proto.StatResponse:
		return await self._request ( proto.StatRequest(), state )

	async def list ( self, state: SessionState, which: Opt[int] = None ) -> proto.ListResponse:
		return await self._request ( proto.ListRequest ( which ), state )

	async def uidl ( self, state: SessionState, which: Opt[int] = None ) -> proto.UidlResponse:
		return await self._request ( proto.UidlRequest ( which ), state )

	async def retr ( self, state: SessionState, which: int ) -> proto.RetrResponse:
		return await self._request ( proto.RetrRequest ( which ), state )

	async def top ( self, state: SessionState, which: int, lines: int ) -> proto.RetrResponse:
		return await self._request ( proto.TopRequest ( which, lines ), state )

	async def dele ( self, state: SessionState, which: int ) -> proto.SuccessResponse:
		return await self._request ( proto.DeleRequest ( which ), state )

	async def noop ( self, state: SessionState ) -> proto.SuccessResponse:
		return await self._request ( proto.NoOpRequest(), state )

	async def rset ( self, state: SessionState ) -> proto.SuccessResponse:
		return await self._request ( proto.RsetRequest(), state )

	async def quit ( self, state: SessionState ) -> proto.SuccessResponse:
		return await self._request ( proto.QuitRequest(), state )
