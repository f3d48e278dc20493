from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_roles
from backend.app.db.models.models_v1 import Item, Recipe, RecipeIngredient, User
from backend.app.db.models.core_types import Role
from backend.services import units

router = APIRouter(prefix="/recipes")

recipe_editors = require_roles(Role.md, Role.superadmin)


class IngredientIn(BaseModel):
    item_id: int
    quantity_required: Decimal = Field(gt=0)
    unit: str = Field(min_length=1, max_length=32)


class RecipeCreate(BaseModel):
    dish_name: str = Field(min_length=1, max_length=255)
    ingredients: list[IngredientIn] = Field(min_length=1)


class RecipeUpdate(BaseModel):
    dish_name: str | None = Field(default=None, min_length=1, max_length=255)
    ingredients: list[IngredientIn] | None = Field(default=None, min_length=1)


def recipe_out(r: Recipe) -> dict:
    return {
        "id": r.id,
        "dish_name": r.dish_name,
        "created_by": r.created_by,
        "ingredients": [
            {
                "item_id": ing.item_id,
                "item_name": ing.item.name if ing.item else None,
                "quantity_required": ing.quantity_required,
                "unit": ing.unit,
            }
            for ing in r.ingredients
        ],
    }


def _get_recipe(db: Session, recipe_id: int) -> Recipe:
    r = db.get(Recipe, recipe_id)
    if not r:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return r


def _dish_taken(db: Session, dish_name: str, exclude_id: int | None = None) -> bool:
    stmt = select(Recipe.id).where(func.lower(Recipe.dish_name) == dish_name.strip().lower())
    if exclude_id is not None:
        stmt = stmt.where(Recipe.id != exclude_id)
    return db.execute(stmt).first() is not None


def _build_ingredients(db: Session, ingredients: list[IngredientIn]) -> list[RecipeIngredient]:
    out: list[RecipeIngredient] = []
    seen: set[int] = set()
    for ing in ingredients:
        if ing.item_id in seen:
            raise HTTPException(status_code=400, detail=f"Item {ing.item_id} listed more than once")
        seen.add(ing.item_id)
        item = db.get(Item, ing.item_id)
        if not item or not item.is_active:
            raise HTTPException(status_code=400, detail=f"Invalid item_id {ing.item_id}")
        unit = ing.unit.strip().lower()
        if not units.are_units_compatible(unit, item.unit):
            raise HTTPException(
                status_code=400,
                detail=f"Unit '{unit}' is not compatible with unit '{item.unit}' of {item.name}",
            )
        out.append(RecipeIngredient(item_id=item.id, quantity_required=ing.quantity_required, unit=unit))
    return out


@router.get("")
def list_recipes(db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    rows = db.execute(select(Recipe).order_by(Recipe.dish_name)).scalars().all()
    return [recipe_out(r) for r in rows]


@router.get("/{recipe_id}")
def get_recipe(recipe_id: int, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    return recipe_out(_get_recipe(db, recipe_id))


@router.post("", status_code=201)
def create_recipe(payload: RecipeCreate, db: Session = Depends(get_db), current: User = Depends(recipe_editors)):
    if _dish_taken(db, payload.dish_name):
        raise HTTPException(status_code=409, detail="Recipe for this dish already exists")

    r = Recipe(dish_name=payload.dish_name.strip(), created_by=current.id)
    r.ingredients = _build_ingredients(db, payload.ingredients)
    db.add(r)
    db.commit()
    db.refresh(r)
    return recipe_out(r)


@router.patch("/{recipe_id}")
def update_recipe(
    recipe_id: int,
    payload: RecipeUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(recipe_editors),
):
    r = _get_recipe(db, recipe_id)
    if payload.dish_name:
        if _dish_taken(db, payload.dish_name, exclude_id=r.id):
            raise HTTPException(status_code=409, detail="Recipe for this dish already exists")
        r.dish_name = payload.dish_name.strip()
    if payload.ingredients is not None:
        new_ingredients = _build_ingredients(db, payload.ingredients)
        r.ingredients.clear()
        db.flush()
        r.ingredients.extend(new_ingredients)
    db.commit()
    db.refresh(r)
    return recipe_out(r)


@router.delete("/{recipe_id}")
def delete_recipe(recipe_id: int, db: Session = Depends(get_db), current: User = Depends(recipe_editors)):
    r = _get_recipe(db, recipe_id)
    db.delete(r)
    db.commit()
    return {"id": recipe_id, "deleted": True}
