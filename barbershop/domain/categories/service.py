"""Category service - Business logic for categories and client tiers"""

import logging
from datetime import date

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Category, CategoryAssignment
from .loyalty import adjacent_category_name, next_start
from .repository import CategoryRepository
from .schemas import CategoryCreate, CategoryDeleteRequest, CategoryResponse, CategoryUpdate

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "Ya existe una categoría con ese nombre"


class CategoryService:
    """Service layer for category business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CategoryRepository()

    def get_categories(self) -> list[Category]:
        return self.repo.get_categories(self.db)

    def get_category(self, category_id: str) -> Category:
        category = self.repo.get_category_by_id(self.db, category_id)
        if not category:
            raise HTTPException(status_code=404, detail="Categoría no encontrada")
        return category

    def _ensure_unique_name(self, name: str, exclude_id: str = None):
        existing = self.repo.get_category_by_name(self.db, name)
        if existing and existing.id != exclude_id:
            raise HTTPException(status_code=409, detail=DUPLICATE_NAME_MESSAGE)

    def create_category(self, data: CategoryCreate) -> Category:
        self._ensure_unique_name(data.nombreCategoria)
        try:
            category = self.repo.create_category(
                self.db,
                name=data.nombreCategoria,
                description=data.descCategoria,
                haircut_discount=data.descuentoCorte,
                product_discount=data.descuentoProducto,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail=DUPLICATE_NAME_MESSAGE) from e

        logger.info(f"✅ Category created: {category.name}")
        return category

    def update_category(self, category_id: str, data: CategoryUpdate) -> Category:
        category = self.get_category(category_id)
        if data.nombreCategoria is not None:
            self._ensure_unique_name(data.nombreCategoria, exclude_id=category.id)

        try:
            return self.repo.update_category(
                self.db,
                category,
                name=data.nombreCategoria,
                description=data.descCategoria,
                haircut_discount=data.descuentoCorte,
                product_discount=data.descuentoProducto,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail=DUPLICATE_NAME_MESSAGE) from e

    def delete_category(self, category_id: str) -> CategoryResponse:
        """Plain delete, refused while any client history references the category"""
        category = self.get_category(category_id)
        if self.repo.count_assignments(self.db, category.id) > 0:
            raise HTTPException(
                status_code=409,
                detail="No se puede eliminar: la categoría está siendo utilizada",
            )
        deleted = CategoryResponse.from_model(category)
        self.db.delete(category)
        self.db.commit()
        logger.info(f"🗑️ Category deleted: {deleted.nombreCategoria}")
        return deleted

    # ========================================================================
    # CLIENTS PER CATEGORY
    # ========================================================================

    def _current_clients(self, category_id: str) -> list[CategoryAssignment]:
        return [
            a for a in self.repo.get_current_assignments(self.db).values() if a.category_id == category_id
        ]

    def list_clients_for_category(self, category_id: str) -> dict:
        category = self.get_category(category_id)
        current = self._current_clients(category.id)
        stats = self.repo.get_appointment_stats(self.db, [a.client_id for a in current])

        clientes = []
        for assignment in current:
            client = assignment.client
            clientes.append(
                {
                    "codCliente": assignment.client_id,
                    "dni": client.dni if client else "",
                    "nombre": client.first_name if client else "",
                    "apellido": client.last_name if client else "",
                    "email": client.email if client else None,
                    "telefono": client.phone if client else None,
                    "stats": stats.get(assignment.client_id, {"total": 0, "cancelados": 0}),
                }
            )

        return {
            "categoria": {"codCategoria": category.id, "nombreCategoria": category.name},
            "clientes": clientes,
        }

    def destroy_with_reassignment(self, category_id: str, data: CategoryDeleteRequest) -> dict:
        """
        Delete a category moving its current clients one tier up or down first

        Args:
            category_id: Category to delete
            data: promote_all, demote_all or per_client with one decision per client

        Returns:
            dict with the deleted category and the number of reassigned clients
        """
        category = self.get_category(category_id)
        current = self._current_clients(category.id)

        if current and not data.action:
            raise HTTPException(status_code=400, detail="Se requiere una acción para reasignar los clientes")

        decisions: dict[str, str] = {}
        if current:
            if data.action in ("promote_all", "demote_all"):
                decision = "promote" if data.action == "promote_all" else "demote"
                decisions = {a.client_id: decision for a in current}
            else:
                if not data.perClient:
                    raise HTTPException(
                        status_code=400, detail="Se requieren decisiones por cliente para continuar"
                    )
                decisions = {d.codCliente: d.decision for d in data.perClient}

            if any(a.client_id not in decisions for a in current):
                raise HTTPException(status_code=400, detail="Faltan decisiones para algunos clientes")

        targets: dict[str, str] = {}
        for assignment in current:
            decision = decisions[assignment.client_id]
            target_name = adjacent_category_name(category.name, decision)
            if not target_name:
                verb = "subir" if decision == "promote" else "bajar"
                raise HTTPException(status_code=400, detail=f"No se puede {verb} la categoría {category.name}")
            targets[assignment.client_id] = target_name

        deleted = CategoryResponse.from_model(category)
        target_categories = self.repo.get_categories_by_names(self.db, list(set(targets.values())))
        today = date.today()
        current_by_client = {a.client_id: a for a in current}
        reassignments = []
        for client_id, target_name in targets.items():
            target = target_categories.get(target_name.lower())
            if not target:
                raise HTTPException(
                    status_code=400, detail=f"No se encontró la categoría destino {target_name}"
                )
            reassignments.append((client_id, target.id, next_start(current_by_client[client_id], today)))

        try:
            for client_id, target_id, started_at in reassignments:
                self.repo.add_assignment(self.db, client_id, target_id, started_at, commit=False)
            self.db.query(CategoryAssignment).filter(CategoryAssignment.category_id == category.id).delete(
                synchronize_session=False
            )
            self.db.delete(category)
            self.db.commit()
        except Exception as e:
            logger.error(f"❌ Error deleting category {deleted.nombreCategoria} with reassignment: {str(e)}")
            self.db.rollback()
            raise

        logger.info(f"🗑️ Category {deleted.nombreCategoria} deleted, {len(reassignments)} clients reassigned")
        return {"categoria": deleted, "reassignedCount": len(reassignments)}

    # ========================================================================
    # CLIENT TIER HISTORY
    # ========================================================================

    def client_history(self, client_id: str) -> list[CategoryAssignment]:
        if not self.repo.get_client(self.db, client_id):
            raise HTTPException(status_code=404, detail="Cliente no encontrado")
        return self.repo.get_client_history(self.db, client_id)

    def assign_category(self, client_id: str, category_id: str) -> CategoryAssignment:
        """Manual tier change by an administrator"""
        client = self.repo.get_client(self.db, client_id)
        if not client or client.user_type != "client":
            raise HTTPException(status_code=404, detail="Cliente no encontrado")
        category = self.get_category(category_id)

        current = self.repo.get_current_assignment(self.db, client.id)
        assignment = self.repo.add_assignment(
            self.db, client.id, category.id, next_start(current, date.today())
        )
        logger.info(f"✅ Client {client.id} manually assigned to {category.name}")
        return assignment
