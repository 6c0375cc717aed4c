"""Route optimization: ask an optimizer for a visiting order.

The default optimizer is a chat model, which gives no guarantee of optimality
and no guarantee it echoes the addresses back unchanged. Anything implementing
RouteOptimizer can be swapped in; NearestNeighborOptimizer is a deterministic one.
"""

import asyncio
import logging
from typing import Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError as SchemaError

from routewise.errors import UpstreamError, ValidationError
from routewise.models import OptimizationResult, OptimizeRouteRequest
from routewise.tools.geocoding import Geocoder
from routewise.tools.llm import extract_json_object
from routewise.utils.geo import haversine_distance, parse_lat_lng, path_length_km

logger = logging.getLogger(__name__)

OPTIMIZE_FAILED = "Failed to optimize route. Please try again."
TOO_FEW_ADDRESSES = "At least two addresses are required to optimize a route."


OPTIMIZE_PROMPT = """You are a route optimization expert. Given a list of addresses, determine the most efficient route to visit each address, minimizing travel distance.

Addresses:
{addresses}
{origin}
Consider factors such as distance between addresses, traffic patterns, and road conditions (if available) to create the optimal route. Provide a clear explanation of your reasoning for the chosen route.

The addresses must be returned in exactly the same format as the input. Do not change the format or spelling of the addresses in any way.

Return ONLY valid JSON of the form:
{{"optimizedRoute": ["<address>", ...], "reasoning": "<why this order is the most efficient>"}}"""


class RouteOptimizer(Protocol):
    async def optimize(
        self,
        addresses: list[str],
        origin_location: str | None = None,
    ) -> OptimizationResult: ...


def parse_optimization(text: str) -> OptimizationResult:
    """Schema-validate a model reply. Raises UpstreamError if anything is missing."""
    try:
        data = extract_json_object(text)
        return OptimizationResult.model_validate(data)
    except (ValueError, SchemaError) as e:
        logger.error("Optimizer returned malformed output: %s", e)
        raise UpstreamError(OPTIMIZE_FAILED) from e


class LLMRouteOptimizer:
    """Asks a chat model to order the stops."""
    
    def __init__(self, client: AsyncOpenAI, model: str, temperature: float = 0.2):
        self.client = client
        self.model = model
        self.temperature = temperature
    
    async def optimize(
        self,
        addresses: list[str],
        origin_location: str | None = None,
    ) -> OptimizationResult:
        origin = f"\nThe driver starts at: {origin_location}\n" if origin_location else ""
        prompt = OPTIMIZE_PROMPT.format(
            addresses="\n".join(f"- {address}" for address in addresses),
            origin=origin,
        )
        
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except OpenAIError as e:
            logger.error("Optimization request failed: %s", e)
            raise UpstreamError(OPTIMIZE_FAILED) from e
        
        if not response.choices:
            logger.error("Optimization response had no choices")
            raise UpstreamError(OPTIMIZE_FAILED)
        
        return parse_optimization(response.choices[0].message.content or "")


class NearestNeighborOptimizer:
    """
    Greedy nearest-neighbour ordering by straight-line distance.
    
    Starts at the stop closest to the origin when the origin is a 'lat,lng'
    pair, otherwise at the first address. Addresses that cannot be geocoded
    are appended at the end in input order.
    """
    
    def __init__(self, geocoder: Geocoder):
        self.geocoder = geocoder
    
    async def optimize(
        self,
        addresses: list[str],
        origin_location: str | None = None,
    ) -> OptimizationResult:
        results = await asyncio.gather(*(self.geocoder.geocode(a) for a in addresses))
        located = {r.address: r.point.as_tuple() for r in results if r.ok}
        unlocated = [a for a in addresses if a not in located]
        
        remaining = [a for a in addresses if a in located]
        order: list[str] = []
        position = parse_lat_lng(origin_location)
        if position is None and remaining:
            order.append(remaining.pop(0))
            position = located[order[0]]
        
        while remaining:
            nearest = min(
                remaining,
                key=lambda a: haversine_distance(*position, *located[a]),
            )
            remaining.remove(nearest)
            order.append(nearest)
            position = located[nearest]
        
        distance = path_length_km([located[a] for a in order])
        reasoning = (
            f"Visited each stop by always driving to the closest unvisited one, "
            f"about {distance:.1f} km in straight lines."
        )
        if unlocated:
            reasoning += f" {len(unlocated)} address(es) could not be located and were placed last."
        
        return OptimizationResult(optimized_route=order + unlocated, reasoning=reasoning)


class RouteOptimizationClient:
    """
    Validates requests to, and responses from, a RouteOptimizer.
    
    Every failure reaching the caller is a ValidationError (raised before any
    call is made) or an UpstreamError. Nothing is retried.
    """
    
    def __init__(self, optimizer: RouteOptimizer):
        self.optimizer = optimizer
    
    async def optimize(
        self,
        addresses: Sequence[str],
        origin_location: str | None = None,
    ) -> OptimizationResult:
        if len(addresses) < 2:
            raise ValidationError(TOO_FEW_ADDRESSES)
        
        request = OptimizeRouteRequest(
            addresses=list(addresses),
            origin_location=origin_location,
        )
        
        try:
            result = await self.optimizer.optimize(request.addresses, request.origin_location)
        except UpstreamError:
            raise
        except Exception as e:
            logger.exception("Error optimizing route")
            raise UpstreamError(OPTIMIZE_FAILED) from e
        
        if not isinstance(result, OptimizationResult):
            try:
                result = OptimizationResult.model_validate(result)
            except SchemaError as e:
                logger.error("Optimizer returned malformed output: %s", e)
                raise UpstreamError(OPTIMIZE_FAILED) from e
        
        if not result.optimized_route:
            logger.error("Optimizer returned an empty route")
            raise UpstreamError(OPTIMIZE_FAILED)
        
        unique = list(dict.fromkeys(result.optimized_route))
        if len(unique) != len(result.optimized_route):
            logger.warning(
                "Optimizer repeated %d address(es); keeping first occurrences",
                len(result.optimized_route) - len(unique),
            )
            result = result.model_copy(update={"optimized_route": unique})
        
        # A reordering never has more stops than it was given
        if len(unique) > len(request.addresses):
            logger.error(
                "Optimizer returned %d stops for %d addresses",
                len(unique), len(request.addresses),
            )
            raise UpstreamError(OPTIMIZE_FAILED)
        
        drifted = [a for a in result.optimized_route if a not in request.addresses]
        if drifted:
            logger.warning(
                "Optimizer altered %d address(es); they will not be routed: %s",
                len(drifted), drifted,
            )
        
        return result
