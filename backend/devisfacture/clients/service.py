import logging
from typing import List, Tuple

from fastcrud import FastCRUD
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from devisfacture.clients.exceptions import ClientInUseException, ClientNotFoundException
from devisfacture.clients.models import Client, ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    """Carnet de clients de l'artisan."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.crud = FastCRUD(Client)

    async def list_clients(self, user_id: int, limit: int, offset: int) -> Tuple[List[dict], int]:
        result = await self.crud.get_multi(
            db=self.db,
            offset=offset,
            limit=limit,
            sort_columns=["name"],
            sort_orders=["asc"],
            user_id=user_id,
        )
        return result["data"], result["total_count"]

    async def get_client(self, client_id: int, user_id: int) -> Client:
        result = await self.db.execute(
            select(Client).where(Client.id == client_id, Client.user_id == user_id)
        )
        client = result.scalars().first()
        if client is None:
            raise ClientNotFoundException(client_id)
        return client

    async def ensure_owned(self, client_id: int, user_id: int) -> None:
        if not await self.crud.exists(self.db, id=client_id, user_id=user_id):
            raise ClientNotFoundException(client_id)

    async def create_client(self, data: ClientCreate, user_id: int) -> Client:
        client = Client(**data.model_dump(), user_id=user_id)
        self.db.add(client)
        await self.db.commit()
        await self.db.refresh(client)
        logger.info(f"[ClientService] Client ID {client.id} créé pour user {user_id}.")
        return client

    async def update_client(self, client_id: int, data: ClientUpdate, user_id: int) -> Client:
        client = await self.get_client(client_id, user_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(client, field, value)
        await self.db.commit()
        await self.db.refresh(client)
        return client

    async def delete_client(self, client_id: int, user_id: int) -> None:
        client = await self.get_client(client_id, user_id)
        try:
            await self.db.delete(client)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ClientInUseException(client_id)
        logger.info(f"[ClientService] Client ID {client_id} supprimé.")
