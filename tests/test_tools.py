"""Unit tests for the tools module."""
import asyncio
import json

import httpx
import pytest
from pydantic import BaseModel

from kaiyo.conversation import DayItem, DayPlan, Itinerary
from kaiyo.errors import GeocodingError
from kaiyo.llm import ToolCallRequest
from kaiyo.tools import (
    ITINERARY_SCHEMA,
    BaseTool,
    Geocoder,
    GeocodeTool,
    LocationQuery,
    SaveItineraryTool,
    ToolCall,
    ToolFailure,
    ToolRegistry,
    ToolSuccess,
    create_default_registry,
)


class EchoArguments(BaseModel):
    text: str
    delay: float = 0.0


class EchoTool(BaseTool):
    """Test tool that echoes its input after an optional delay."""

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echo text back"

    @property
    def parameters_schema(self) -> dict:
        return {"type": "object", "properties": {"text": {"type": "string"}}, "required": ["text"]}

    @property
    def arguments_model(self) -> type[BaseModel]:
        return EchoArguments

    async def run(self, arguments: EchoArguments) -> dict:
        await asyncio.sleep(arguments.delay)
        return {"echo": arguments.text}


class BrokenTool(EchoTool):
    @property
    def name(self) -> str:
        return "broken"

    async def run(self, arguments: EchoArguments) -> dict:
        raise RuntimeError("disk on fire")


def _geocoder(handler) -> Geocoder:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Geocoder(base_url="https://geo.test/search", user_agent="kaiyo-tests", client=client)


class TestBaseTool:
    """Tests for the BaseTool interface."""

    def test_tool_is_abstract(self):
        with pytest.raises(TypeError):
            BaseTool()  # type: ignore

    def test_to_spec(self):
        spec = EchoTool().to_spec()
        assert spec.name == "echo"
        assert spec.parameters["required"] == ["text"]

    @pytest.mark.asyncio
    async def test_execute_success(self):
        result = await EchoTool().execute(ToolCall(id_="call_1", tool_name="echo", arguments='{"text": "hi"}'))

        assert isinstance(result, ToolSuccess)
        assert result.tool_call_id == "call_1"
        assert json.loads(result.content) == {"echo": "hi"}
        assert result.error is False

    @pytest.mark.asyncio
    async def test_execute_malformed_json(self):
        result = await EchoTool().execute(ToolCall(id_="call_1", tool_name="echo", arguments='{"text": '))

        assert isinstance(result, ToolFailure)
        assert result.error is True
        body = json.loads(result.content)
        assert body["error"] == "Invalid arguments for echo"
        assert body["details"]

    @pytest.mark.asyncio
    async def test_execute_schema_violation(self):
        result = await EchoTool().execute(ToolCall(id_="call_1", tool_name="echo", arguments='{"other": 1}'))
        assert isinstance(result, ToolFailure)
        assert result.details[0]["loc"] == ["text"]


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_register_and_list(self):
        registry = ToolRegistry([EchoTool()])

        assert "echo" in registry
        assert len(registry) == 1
        assert registry.names == ["echo"]
        assert [spec.name for spec in registry.specs()] == ["echo"]

    def test_duplicate_registration_fails(self):
        registry = ToolRegistry([EchoTool()])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(EchoTool())

    @pytest.mark.asyncio
    async def test_unknown_tool_is_structured_error(self):
        registry = ToolRegistry([EchoTool()])

        result = await registry.invoke("teleport", "{}", "call_9")

        assert isinstance(result, ToolFailure)
        assert result.tool_call_id == "call_9"
        assert "Unknown tool: teleport" in json.loads(result.content)["error"]

    @pytest.mark.asyncio
    async def test_tool_exception_is_structured_error(self):
        registry = ToolRegistry([BrokenTool()])

        result = await registry.invoke("broken", '{"text": "x"}', "call_1")

        assert isinstance(result, ToolFailure)
        assert "disk on fire" in result.error_message

    @pytest.mark.asyncio
    async def test_dispatch_preserves_request_order(self):
        """Slower calls finishing last must not reorder results."""
        registry = ToolRegistry([EchoTool()])
        calls = [
            ToolCallRequest(id="call_a", name="echo", arguments='{"text": "a", "delay": 0.05}'),
            ToolCallRequest(id="call_b", name="missing", arguments="{}"),
            ToolCallRequest(id="call_c", name="echo", arguments='{"text": "c"}'),
        ]

        results = await registry.dispatch(calls)

        assert [r.tool_call_id for r in results] == ["call_a", "call_b", "call_c"]
        assert [r.error for r in results] == [False, True, False]
        assert json.loads(results[0].content) == {"echo": "a"}

    @pytest.mark.asyncio
    async def test_dispatch_runs_calls_concurrently(self):
        registry = ToolRegistry([EchoTool()])
        calls = [
            ToolCallRequest(id=f"call_{i}", name="echo", arguments='{"text": "x", "delay": 0.2}')
            for i in range(5)
        ]

        loop = asyncio.get_running_loop()
        start = loop.time()
        await registry.dispatch(calls)

        assert loop.time() - start < 0.8


class TestLocationQuery:
    """Tests for geocoding descriptors."""

    def test_label_joins_non_empty_fields(self):
        query = LocationQuery(amenity="Louvre", street="", city="Paris", country="France")
        assert query.label() == "Louvre Paris France"

    def test_params_skip_empty_fields(self):
        query = LocationQuery(city="Madikeri", state="Karnataka", country="India")
        assert query.to_params() == {
            "format": "json",
            "city": "Madikeri",
            "state": "Karnataka",
            "country": "India",
        }


class TestGeocoder:
    """Tests for the Nominatim client."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"lat": "1", "lon": "2"}])

        geocoder = _geocoder(handler)
        await geocoder.lookup(LocationQuery(city="Paris", country="France"))

        request = seen[0]
        assert request.url.host == "geo.test"
        assert request.url.params["format"] == "json"
        assert request.url.params["city"] == "Paris"
        assert "amenity" not in request.url.params
        assert request.headers["User-Agent"] == "kaiyo-tests"

    @pytest.mark.asyncio
    async def test_top_hit_only_without_amenity(self, nominatim_handler):
        geocoder = _geocoder(nominatim_handler())
        results = await geocoder.lookup(LocationQuery(city="Paris", country="France"))
        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_all_hits_with_amenity(self, nominatim_handler):
        geocoder = _geocoder(nominatim_handler())
        results = await geocoder.lookup(LocationQuery(amenity="Cafe", city="Paris", country="France"))
        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_non_success_status_raises(self, nominatim_handler):
        geocoder = _geocoder(nominatim_handler(failures=("Paris",)))
        with pytest.raises(GeocodingError, match="unexpected status 500") as exc_info:
            await geocoder.lookup(LocationQuery(city="Paris", country="France"))
        assert exc_info.value.location == "Paris France"

    @pytest.mark.asyncio
    async def test_empty_results_raise(self, nominatim_handler):
        geocoder = _geocoder(nominatim_handler())
        with pytest.raises(GeocodingError, match="no results"):
            await geocoder.lookup(LocationQuery(city="Nowhere", country="Atlantis"))

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        geocoder = _geocoder(handler)
        with pytest.raises(GeocodingError, match="request failed"):
            await geocoder.lookup(LocationQuery(city="Paris", country="France"))


class TestGeocodeTool:
    """Tests for the batch geocoding tool."""

    def test_tool_signature(self, nominatim_handler):
        tool = GeocodeTool(_geocoder(nominatim_handler()))
        spec = tool.to_spec()

        assert spec.name == "get_geocode_data"
        items = spec.parameters["properties"]["locations"]["items"]
        assert items["required"] == ["city", "country"]

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_one_entry_per_descriptor(self, nominatim_handler):
        tool = GeocodeTool(_geocoder(nominatim_handler(failures=("Lyon",))))
        arguments = json.dumps({"locations": [
            {"city": "Paris", "country": "France"},
            {"city": "Lyon", "country": "France"},
        ]})

        result = await tool.execute(ToolCall(id_="call_1", tool_name="get_geocode_data", arguments=arguments))

        assert isinstance(result, ToolSuccess)
        entries = json.loads(result.content)
        assert len(entries) == 2
        assert entries[0]["location"] == "Paris France"
        assert len(entries[0]["results"]) == 1
        assert entries[1]["location"] == "Lyon France"
        assert "unexpected status 500" in entries[1]["error"]

    @pytest.mark.asyncio
    async def test_missing_required_field_rejected(self, nominatim_handler):
        tool = GeocodeTool(_geocoder(nominatim_handler()))
        result = await tool.execute(ToolCall(
            tool_name="get_geocode_data",
            arguments='{"locations": [{"city": "Paris"}]}',
        ))
        assert isinstance(result, ToolFailure)

    @pytest.mark.asyncio
    async def test_default_registry(self, nominatim_handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(nominatim_handler()))
        registry, geocoder = create_default_registry(
            geocode_base_url="https://geo.test/search",
            geocode_user_agent="kaiyo-tests",
            http_client=client,
        )

        assert registry.names == ["get_geocode_data"]
        result = await registry.invoke(
            "get_geocode_data",
            '{"locations": [{"city": "Paris", "country": "France"}]}',
            "call_1",
        )
        assert not result.error

        await geocoder.aclose()
        assert not client.is_closed
        await client.aclose()


class TestSaveItineraryTool:
    """Tests for the extraction tool."""

    def test_schema_matches_wire_format(self):
        assert ITINERARY_SCHEMA["additionalProperties"] is False
        assert ITINERARY_SCHEMA["properties"]["days"]["minItems"] == 1
        spec = SaveItineraryTool().to_spec()
        assert spec.name == "save_itinerary"
        assert spec.description == "Call this ONLY when a finalized itinerary is ready."

    @pytest.mark.parametrize("schema, model", [
        (ITINERARY_SCHEMA, Itinerary),
        (ITINERARY_SCHEMA["properties"]["days"]["items"], DayPlan),
        (ITINERARY_SCHEMA["properties"]["days"]["items"]["properties"]["items"]["items"], DayItem),
    ])
    def test_required_fields_match_model(self, schema, model):
        """Fields the schema requires are exactly the fields the parser requires."""
        required = {
            field.alias or name
            for name, field in model.model_fields.items()
            if field.is_required()
        }
        assert set(schema["required"]) == required

    @pytest.mark.asyncio
    async def test_valid_payload(self, sample_itinerary):
        result = await SaveItineraryTool().execute(
            ToolCall(id_="call_1", tool_name="save_itinerary", arguments=json.dumps(sample_itinerary))
        )

        assert isinstance(result, ToolSuccess)
        assert isinstance(result.payload, Itinerary)
        assert result.payload.days[0].items[0].start_time == "09:00"
        assert json.loads(result.content)["startDate"] == "2025-05-01"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mutate", [
        lambda data: data.pop("destination"),
        lambda data: data.update(days=[]),
        lambda data: data["days"][0].update(day=0),
        lambda data: data["days"][1].pop("items"),
        lambda data: data.update(budget=100),
    ])
    async def test_invalid_payload(self, sample_itinerary, mutate):
        mutate(sample_itinerary)
        result = await SaveItineraryTool().execute(
            ToolCall(tool_name="save_itinerary", arguments=json.dumps(sample_itinerary))
        )
        assert isinstance(result, ToolFailure)
