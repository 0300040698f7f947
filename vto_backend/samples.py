"""Sample images offered when the user has no photos of their own."""

from .models import SampleImage

SAMPLE_PERSON_IMAGES: list[SampleImage] = [
    SampleImage(
        id="person-1",
        url="https://images.pexels.com/photos/1040945/pexels-photo-1040945.jpeg",
        type="person",
        description="Woman standing front view",
    ),
    SampleImage(
        id="person-2",
        url="https://images.pexels.com/photos/1222271/pexels-photo-1222271.jpeg",
        type="person",
        description="Man standing casual",
    ),
    SampleImage(
        id="person-3",
        url="https://images.pexels.com/photos/1270076/pexels-photo-1270076.jpeg",
        type="person",
        description="Woman full body portrait",
    ),
]

SAMPLE_GARMENT_IMAGES: list[SampleImage] = [
    SampleImage(
        id="garment-1",
        url="https://images.pexels.com/photos/1020585/pexels-photo-1020585.jpeg",
        type="garment",
        description="White t-shirt",
    ),
    SampleImage(
        id="garment-2",
        url="https://images.pexels.com/photos/1346187/pexels-photo-1346187.jpeg",
        type="garment",
        description="Blue denim jacket",
    ),
    SampleImage(
        id="garment-3",
        url="https://images.pexels.com/photos/1021693/pexels-photo-1021693.jpeg",
        type="garment",
        description="Red dress",
    ),
]
