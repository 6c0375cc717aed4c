"""Input models for requests sent to the external services."""

from pydantic import BaseModel, Field


class OptimizeRouteRequest(BaseModel):
    """Request model for asking an optimizer to order a set of stops."""
    
    addresses: list[str] = Field(
        ...,
        min_length=2,
        description="Addresses to visit, exactly as the user entered them"
    )
    origin_location: str | None = Field(
        default=None,
        alias="originLocation",
        description="Optional free-text starting location, e.g. the user's 'lat,lng'"
    )
    
    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "addresses": ["221B Baker St, London", "10 Downing St, London"],
                "originLocation": "51.5074,-0.1278",
            }
        },
    }


class RecognizeAddressRequest(BaseModel):
    """Request model for extracting an address from a photo."""
    
    photo_data_uri: str = Field(
        ...,
        alias="photoDataUri",
        pattern=r"^data:[\w/+.-]+;base64,",
        description="Photo as 'data:<mimetype>;base64,<encoded_data>'"
    )
    
    model_config = {"populate_by_name": True}
