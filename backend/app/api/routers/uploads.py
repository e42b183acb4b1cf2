from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from typing import List, Optional

from app.errors import MalformedInput, UnsupportedFormat
from app.schemas.layer import UploadPreview
from app.services.geometry.loader import UploadedGeometry, load_features, load_stored_shapefile
from app.services.normalize.features import property_keys
from app.services.storage.uploads import batch_dir, store_upload, upload_url

router = APIRouter()


def _preview(file_name: str, features: list) -> UploadPreview:
    records = [{"geojson": f} for f in features]
    return UploadPreview(fileName=file_name, features=records, fields=property_keys(records))


@router.post("")
@router.post("/")
async def upload_file(file: UploadFile = File(...), batch: Optional[str] = Form(None)):
    """Store one file; shapefile parts share a ``batch`` so they land side by side."""
    data = await file.read()
    try:
        path = store_upload(file.filename, data, batch)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"url": upload_url(path), "batch": path.parent.name}


@router.post("/preview")
async def preview_upload(files: List[UploadFile] = File(...)) -> UploadPreview:
    uploaded = [
        UploadedGeometry(filename=f.filename or "", data=await f.read(), content_type=f.content_type)
        for f in files
    ]
    try:
        # プレビューは一時ディレクトリで読み、アップロード領域には残さない
        features = load_features(uploaded)
    except UnsupportedFormat as e:
        raise HTTPException(status_code=415, detail=str(e))
    except MalformedInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _preview(uploaded[0].filename, features)


@router.post("/{batch}/load")
def load_batch(batch: str) -> UploadPreview:
    """Parse a shapefile whose parts were uploaded one by one into ``batch``."""
    try:
        directory = batch_dir(batch)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not directory.is_dir():
        raise HTTPException(status_code=404, detail="upload batch not found")
    try:
        features = load_stored_shapefile(directory)
    except UnsupportedFormat as e:
        raise HTTPException(status_code=415, detail=str(e))
    except MalformedInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    shp = sorted(p.name for p in directory.iterdir() if p.suffix.lower() == ".shp")[0]
    return _preview(shp, features)
