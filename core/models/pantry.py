from pydantic import BaseModel, ConfigDict, Field


class PantryIngredient(BaseModel):
    """Ingredient with nutrition facts per 100 g."""
    id: int
    name: str = Field(..., min_length=1)
    calories: float = Field(..., ge=0)
    protein_g: float = Field(0.0, ge=0)
    carbs_g: float = Field(0.0, ge=0)
    fat_g: float = Field(0.0, ge=0)
    revision: int = 1

    model_config = ConfigDict(from_attributes=True)
