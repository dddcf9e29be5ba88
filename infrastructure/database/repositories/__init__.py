"""Repository facades exposing plain-dict accessors over the ops mixins."""

from infrastructure.database.repositories.plants import PlantRepository, row_to_dict

__all__ = ["PlantRepository", "row_to_dict"]
