"""Tests for the X3D scene loader."""

import math
import pytest

from core.math import Vec3
from core.geometry import Sphere, TriangleSet
from core.errors import SceneLoadError, RayTracerError
from scene_builders.x3d_scene_builder import X3DSceneBuilder, parse_floats

SCENE = """<?xml version="1.0" encoding="UTF-8"?>
<X3D profile="Immersive" version="3.2">
  <Scene>
    <Viewpoint position="0 1 12" orientation="1 0 0 -0.1" fieldOfView="0.6"/>
    <PointLight location="0 10 0" color="1 0.9 0.8" radio="0.25" attenuation="1 0.1 0"/>
    <PointLight location="5 5 5" on="false"/>
    <DirectionalLight direction="0 -1 0"/>
    <Shape>
      <Appearance>
        <Material DEF="glass" diffuseColor="0.2 0.3 0.4" specularColor="1 1 1"
                  transparency="0.7" shininess="0.9">
          <MetadataSet containerField="metadata" name="indexes">
            <MetadataFloat name="refraction" value="1.5"/>
            <MetadataFloat name="reflection" value="0.25"/>
            <MetadataFloat name="diffuse" value="0.8"/>
            <MetadataFloat name="specular" value="0.6"/>
          </MetadataSet>
        </Material>
      </Appearance>
      <Sphere radius="2"/>
    </Shape>
    <Transform translation="0 0 5">
      <Transform scale="2 2 2">
        <Shape>
          <IndexedTriangleFanSet index="0 1 2 3 -1 0 3 4 -1">
            <Coordinate point="0 0 0, 1 0 0, 1 1 0, 0 1 0, -1 1 0"/>
          </IndexedTriangleFanSet>
        </Shape>
      </Transform>
    </Transform>
    <Transform translation="3 0 0">
      <Shape>
        <Appearance><Material USE="glass"/></Appearance>
        <IndexedTriangleStripSet index="0 1 2 3">
          <Coordinate point="0 0 0 1 0 0 0 1 0 1 1 0"/>
        </IndexedTriangleStripSet>
      </Shape>
    </Transform>
    <Shape>
      <TriangleSet><Coordinate point="0 0 -3 1 0 -3 0 1 -3"/></TriangleSet>
    </Shape>
    <Shape>
      <IndexedTriangleSet index="0 1 2 0 2 3">
        <Coordinate point="0 0 -4 1 0 -4 1 1 -4 0 1 -4"/>
      </IndexedTriangleSet>
    </Shape>
  </Scene>
</X3D>
"""


def wrap(body: str) -> str:
    return f"<X3D><Scene>{body}</Scene></X3D>"


@pytest.fixture
def scene():
    return X3DSceneBuilder().loads(SCENE)


class TestX3DLoading:
    def test_object_and_light_counts(self, scene):
        assert len(scene.objects) == 5
        assert len(scene.lights) == 1
        # 1 sphere + 3 fan + 2 strip + 1 + 2 triangles
        assert len(scene.all_leaf_objects()) == 9

    def test_viewpoint(self, scene):
        camera = scene.camera
        assert camera.position == Vec3(0, 1, 12)
        assert camera.field_of_view == pytest.approx(0.6)
        axis, angle = camera.orientation
        assert axis == Vec3(1, 0, 0)
        assert angle == pytest.approx(-0.1)

    def test_light(self, scene):
        light = scene.lights[0]
        assert light.position == Vec3(0, 10, 0)
        assert light.color == Vec3(1, 0.9, 0.8)
        assert light.radius == 0.25
        assert light.attenuation == (1.0, 0.1, 0.0)

    def test_material_and_metadata(self, scene):
        sphere = scene.objects[0]
        assert isinstance(sphere, Sphere)
        assert sphere.radius == 2
        mat = sphere.material
        assert mat.diffuse_color == Vec3(0.2, 0.3, 0.4)
        assert mat.transparency == pytest.approx(0.7)
        assert mat.shininess == pytest.approx(0.9)
        assert mat.refraction_index == pytest.approx(1.5)
        assert mat.reflection_index == pytest.approx(0.25)
        assert mat.diffuse_index == pytest.approx(0.8)
        assert mat.specular_index == pytest.approx(0.6)

    def test_used_material_is_copied(self, scene):
        strip = scene.objects[2]
        assert strip.material.refraction_index == pytest.approx(1.5)
        assert strip.material is not scene.objects[0].material

    def test_shape_without_appearance_keeps_defaults(self, scene):
        mat = scene.objects[3].material
        assert mat.diffuse_color == Vec3(0.8, 0.8, 0.8)
        assert mat.specular_color == Vec3(1, 1, 1)

    def test_fan_restarts_after_separator(self, scene):
        fan = scene.objects[1]
        assert isinstance(fan, TriangleSet)
        assert len(fan) == 3

    def test_nested_transforms_apply_innermost_first(self, scene):
        fan = scene.objects[1]
        # vertex (1, 0, 0) scaled by 2, then moved by (0, 0, 5)
        assert fan.children()[0].v1.epsilon_equals(Vec3(2, 0, 5), 1e-12)

    def test_strip_triangles(self, scene):
        strip = scene.objects[2]
        assert len(strip) == 2
        assert strip.children()[1].v0.epsilon_equals(Vec3(4, 0, 0), 1e-12)

    def test_plain_and_indexed_triangle_sets(self, scene):
        assert len(scene.objects[3]) == 1
        assert len(scene.objects[4]) == 2

    def test_viewpoint_inside_transform_moves(self):
        scene = X3DSceneBuilder().loads(wrap(
            '<Transform translation="0 0 5" rotation="0 1 0 1.5707963">'
            '<Viewpoint position="0 0 10"/></Transform>'))
        assert scene.camera.position.epsilon_equals(Vec3(10, 0, 5), 1e-6)
        axis, angle = scene.camera.orientation
        assert angle == pytest.approx(math.pi / 2, abs=1e-6)

    def test_light_inside_transform_moves(self):
        scene = X3DSceneBuilder().loads(wrap(
            '<Transform translation="1 2 3"><PointLight location="0 0 0"/></Transform>'))
        assert scene.lights[0].position == Vec3(1, 2, 3)

    def test_sphere_inside_transform(self):
        scene = X3DSceneBuilder().loads(wrap(
            '<Transform translation="1 0 0" scale="3 2 4"><Shape><Sphere/></Shape></Transform>'))
        sphere = scene.objects[0]
        assert sphere.center == Vec3(1, 0, 0)
        assert sphere.radius == 2

    def test_unsupported_geometry_is_skipped(self, capsys):
        scene = X3DSceneBuilder().loads(wrap('<Shape><Box size="1 1 1"/></Shape>'))
        assert scene.objects == []
        assert "Box" in capsys.readouterr().err

    def test_directional_light_warns(self, capsys):
        scene = X3DSceneBuilder().loads(wrap('<DirectionalLight/>'))
        assert scene.lights == []
        assert "DirectionalLight" in capsys.readouterr().err

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "scene.x3d"
        path.write_text(SCENE)
        scene = X3DSceneBuilder().load(str(path))
        assert len(scene.objects) == 5


class TestX3DErrors:
    def test_missing_file(self, tmp_path):
        with pytest.raises(SceneLoadError) as info:
            X3DSceneBuilder().load(str(tmp_path / "missing.x3d"))
        assert isinstance(info.value.__cause__, OSError)

    def test_malformed_xml(self):
        with pytest.raises(SceneLoadError):
            X3DSceneBuilder().loads("<X3D><Scene>")

    def test_missing_scene_element(self):
        with pytest.raises(SceneLoadError):
            X3DSceneBuilder().loads("<X3D><head/></X3D>")

    def test_index_out_of_range(self):
        with pytest.raises(SceneLoadError) as info:
            X3DSceneBuilder().loads(wrap(
                '<Shape><IndexedTriangleSet index="0 1 7">'
                '<Coordinate point="0 0 0 1 0 0 0 1 0"/></IndexedTriangleSet></Shape>'))
        assert isinstance(info.value.__cause__, IndexError)

    def test_bad_number(self):
        with pytest.raises(SceneLoadError):
            X3DSceneBuilder().loads(wrap('<Shape><Sphere radius="big"/></Shape>'))

    def test_wrong_vector_size(self):
        with pytest.raises(SceneLoadError):
            X3DSceneBuilder().loads(wrap('<Viewpoint position="0 0"/>'))

    def test_missing_coordinates(self):
        with pytest.raises(SceneLoadError):
            X3DSceneBuilder().loads(wrap('<Shape><TriangleSet/></Shape>'))

    def test_undefined_use(self):
        with pytest.raises(SceneLoadError):
            X3DSceneBuilder().loads(wrap(
                '<Shape><Appearance><Material USE="nothing"/></Appearance><Sphere/></Shape>'))

    def test_errors_share_a_base_class(self):
        assert issubclass(SceneLoadError, RayTracerError)


def test_parse_floats_accepts_commas():
    assert parse_floats("1 2, 3,4\n5") == [1, 2, 3, 4, 5]
    assert parse_floats("  ") == []
