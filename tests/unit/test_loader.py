import pytest
import responses
from responses import matchers

from cladeview.client import ApiClient
from cladeview.exceptions import AuthError, TransportError
from cladeview.loader import ApiTrainingService, ResourceLoader
from cladeview.types import StoreAction

from tests.conftest import BASE_URL, FEATURE_SET_ID, PROJECT_ID, TREE_ID

OTHER_TREE_ID = "44444444-4444-4444-8444-444444444444"


@pytest.fixture
def loader(test_config, store_context) -> ResourceLoader:
    return ResourceLoader(ApiClient(test_config), store_context)


def _page(results, count=None, next=None):
    return {"count": len(results) if count is None else count, "next": next, "previous": None, "results": results}


@pytest.mark.asyncio
async def test_load_clades(loader, api_clades):
    actions = []
    loader.context.clades.subscribe(lambda event: actions.append(event.action))

    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/", json=_page(api_clades, count=31, next="page2"))
        state = await loader.load_clades(TREE_ID)

    assert state is loader.context.clades.list
    assert state.pending is False
    assert state.error is None
    assert [clade.name for clade in state.items] == ["root", "Fusarium", "MK123456.1"]
    assert state.count == 31
    assert state.next == "page2"
    assert loader.context.clades.scope == TREE_ID
    assert actions == [StoreAction.RESET, StoreAction.LIST_PENDING, StoreAction.LIST_SUCCESS]


@pytest.mark.asyncio
async def test_load_clades_failure_keeps_items(loader, api_clades):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/", json=_page(api_clades))
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/", json={"detail": "database unavailable"}, status=503)
        await loader.load_clades(TREE_ID)
        state = await loader.load_clades(TREE_ID)

    assert state.pending is False
    assert isinstance(state.error, TransportError)
    assert state.error.status_code == 503
    assert state.error.payload == {"detail": "database unavailable"}
    assert len(state.items) == 3


@pytest.mark.asyncio
async def test_load_projects_auth_failure(loader):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/projs/", json={"detail": "Signature has expired."}, status=401)
        state = await loader.load_projects()

    assert isinstance(state.error, AuthError)
    assert state.items == ()


@pytest.mark.asyncio
async def test_load_trees_scoped_by_project(loader, api_tree):
    other_project = "55555555-5555-4555-8555-555555555555"

    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/{PROJECT_ID}/trees/", json=_page([api_tree]))
        rsps.add(
            responses.GET,
            f"{BASE_URL}/{other_project}/trees/",
            json={"detail": "Not found."},
            status=404,
        )
        await loader.load_trees(PROJECT_ID)
        assert len(loader.context.trees.list.items) == 1

        state = await loader.load_trees(other_project)

    # the failed request for the new project must not show the old project's trees
    assert state.items == ()
    assert state.error.status_code == 404


@pytest.mark.asyncio
async def test_load_tree_detail(loader, api_tree):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/{PROJECT_ID}/trees/{TREE_ID}", json=api_tree)
        state = await loader.load_tree(PROJECT_ID, TREE_ID)

    assert state.record.uuid == TREE_ID
    assert state.record.feature_set == FEATURE_SET_ID
    assert state.requested == TREE_ID


@pytest.mark.asyncio
async def test_load_clade_detail_failure(loader, api_clades):
    clade_id = api_clades[1]["uuid"]

    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/{clade_id}", json=api_clades[1])
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/{clade_id}", status=500)
        first = await loader.load_clade(TREE_ID, clade_id)
        second = await loader.load_clade(TREE_ID, clade_id)

    assert first.record.name == "Fusarium"
    assert second.error.status_code == 500
    assert second.record == first.record


@pytest.mark.asyncio
async def test_load_project_detail(loader):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/projs/{PROJECT_ID}", json={"uuid": str(PROJECT_ID), "title": "Fungi"})
        state = await loader.load_project(PROJECT_ID)

    assert state.record.title == "Fungi"


@pytest.mark.asyncio
async def test_refresh_clades_reuses_list_params(loader, api_clades):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            f"{BASE_URL}/{TREE_ID}/clades/",
            json=_page(api_clades),
            match=[matchers.query_param_matcher({"ps": "25", "p": "2", "q": "fus"})],
        )
        await loader.load_clades(TREE_ID, page=2, page_size=25, query="fus")
        state = await loader.refresh_clades(TREE_ID)

        assert len(rsps.calls) == 2

    assert len(state.items) == 3


@pytest.mark.asyncio
async def test_refresh_clades_skipped(loader, api_clades):
    assert await loader.refresh_clades(TREE_ID) is None

    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/", json=_page(api_clades))
        await loader.load_clades(TREE_ID)
        # the user moved on to another tree while training ran
        assert await loader.refresh_clades(OTHER_TREE_ID) is None

        assert len(rsps.calls) == 1


@pytest.mark.asyncio
async def test_api_training_service(test_config):
    service = ApiTrainingService(ApiClient(test_config))
    clade_id = "11111111-1111-4111-8111-111111111111"
    result = {"ml_model": "svm", "test_score": [0.92, 0.88], "train_status": "finished"}

    with responses.RequestsMock() as rsps:
        rsps.add(responses.PATCH, f"{BASE_URL}/{clade_id}/models/{FEATURE_SET_ID}/train", json=result)
        assert await service.train(clade_id, FEATURE_SET_ID) == result


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "record",
    [
        {"tree": str(TREE_ID), "branch_type": "R"},
        {"uuid": "not-a-uuid", "branch_type": "R"},
        "11111111-1111-4111-8111-111111111111",
    ],
)
async def test_load_clades_malformed_record(loader, api_clades, record):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/", json=_page(api_clades))
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/", json=_page([api_clades[0], record]))
        await loader.load_clades(TREE_ID)
        state = await loader.load_clades(TREE_ID)

    assert state.pending is False
    assert isinstance(state.error, TransportError)
    assert state.error.status_code is None
    assert state.error.payload == [api_clades[0], record]
    assert len(state.items) == 3


@pytest.mark.asyncio
async def test_load_clades_text_body(loader):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/", body="<html>maintenance</html>", status=200)
        state = await loader.load_clades(TREE_ID)

    assert state.pending is False
    assert state.error.payload == "<html>maintenance</html>"
    assert state.items == ()


@pytest.mark.asyncio
async def test_load_clade_empty_body(loader):
    clade_id = "22222222-2222-4222-8222-222222222222"

    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE_URL}/{TREE_ID}/clades/{clade_id}", body="", status=200)
        state = await loader.load_clade(TREE_ID, clade_id)

    assert state.pending is False
    assert isinstance(state.error, TransportError)
    assert state.error.payload is None
    assert state.record is None
    assert state.requested == clade_id
