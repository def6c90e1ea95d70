from io import BytesIO

import pandas as pd


def _xlsx(rows):
    buf = BytesIO()
    pd.DataFrame(rows).to_excel(buf, index=False)
    buf.seek(0)
    return buf


def test_export_has_one_row_per_variant(client, admin_headers, make_product):
    make_product(name="Two Sizes", variants=[
        {"sku_code": "TS-S", "size": "S", "stock_quantity": 1},
        {"sku_code": "TS-L", "size": "L", "stock_quantity": 2},
    ])
    make_product(name="No Variants", variants=[])

    r = client.get("/api/v1/products/export", headers=admin_headers)
    assert r.status_code == 200
    assert r.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    df = pd.read_excel(BytesIO(r.data))
    assert len(df) == 3
    assert list(df[df["Slug"] == "two-sizes"]["SKU"]) == ["TS-S", "TS-L"]
    assert df[df["Slug"] == "no-variants"]["SKU"].isna().all()


def test_import_upserts_products_and_variants(client, admin_headers, make_product):
    make_product(name="Existing Tee", variants=[{"sku_code": "EX-1", "stock_quantity": 1}])

    sheet = _xlsx([
        {"Name": "Existing Tee", "MRP": 600, "Selling Price": 450, "SKU": "EX-1", "Stock": 9},
        {"Name": "Existing Tee", "MRP": 600, "Selling Price": 450, "SKU": "EX-2", "Stock": 4, "Size": "XL"},
        {"Name": "Brand New", "MRP": 100, "Selling Price": 80, "SKU": "BN-1", "Stock": 3},
    ])
    r = client.post("/api/v1/products/import", headers=admin_headers,
                    data={"file": (sheet, "catalog.xlsx")}, content_type="multipart/form-data")
    assert r.status_code == 200, r.get_json()
    assert r.get_json()["data"] == {
        "products_created": 1, "products_updated": 1, "variants_created": 2, "variants_updated": 1,
    }

    tee = client.get("/api/v1/products/existing-tee").get_json()["data"]
    assert tee["selling_price"] == 450.0
    assert {v["sku_code"]: v["stock_quantity"] for v in tee["variants"]} == {"EX-1": 9, "EX-2": 4}
    assert client.get("/api/v1/products/brand-new").status_code == 200


def test_import_rejects_bad_uploads(client, admin_headers):
    r = client.post("/api/v1/products/import", headers=admin_headers, data={}, content_type="multipart/form-data")
    assert r.status_code == 400

    r = client.post("/api/v1/products/import", headers=admin_headers,
                    data={"file": (BytesIO(b"a,b"), "catalog.csv")}, content_type="multipart/form-data")
    assert r.get_json()["message"] == "Only .xlsx files are allowed"

    sheet = _xlsx([{"Name": "Only Name"}])
    r = client.post("/api/v1/products/import", headers=admin_headers,
                    data={"file": (sheet, "catalog.xlsx")}, content_type="multipart/form-data")
    assert r.status_code == 400
    assert "Missing required columns" in r.get_json()["message"]


def test_bulk_endpoints_need_admin(client):
    assert client.get("/api/v1/products/export").status_code == 401
